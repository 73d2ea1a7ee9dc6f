# trashcan/store/base.py
"""
Node store interface consumed by the trashcan cleaner.

Design principles:
- The store is an opaque tree of nodes; the cleaner only lists the children
  of the archive root, reads a few properties and deletes nodes
- Every call takes an explicit SecurityContext
- Transactions are context managers: commit on clean exit, rollback on any
  exception
- Deleting a node that is already gone reports NOT_FOUND, never raises
- Conflicts raise TransientStoreConflict; other failures raise
  UnrecoverableStoreError
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from trashcan.security import SecurityContext


@dataclass(frozen=True)
class NodeRef:
    """Opaque handle to a node: store reference plus node id."""

    store_ref: str
    node_id: int

    def __str__(self) -> str:
        return f"{self.store_ref}/{self.node_id}"


@dataclass(frozen=True)
class ChildAssoc:
    """A parent-child association as returned by a listing."""

    parent_ref: NodeRef
    child_ref: NodeRef
    node_type: str
    archived_at: datetime | None = None


class DeleteOutcome(str, Enum):
    """Result of a delete request."""

    DELETED = "deleted"
    NOT_FOUND = "not_found"  # Already gone; treated as success


class NodeStore(ABC):
    """
    Abstract interface for the host node store.

    Implementations must handle:
    - Listing children in native association order (oldest association first)
    - Bounded listings (max_results)
    - Cascading deletes (a node's descendants go with it)
    - All-or-nothing transactions
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'sql', 'memory')."""
        pass

    @abstractmethod
    def transaction(self, read_only: bool = False) -> AbstractContextManager[None]:
        """
        Open a transaction, or join the one already open.

        Writes inside a read-only transaction raise UnrecoverableStoreError.
        """
        pass

    @abstractmethod
    def get_root_node(self, ctx: SecurityContext, store_ref: str) -> NodeRef:
        """
        Get the root node of a store.

        Raises:
            UnrecoverableStoreError: If the store does not exist
        """
        pass

    @abstractmethod
    def get_child_assocs(
        self,
        ctx: SecurityContext,
        parent: NodeRef,
        max_results: int | None = None,
    ) -> list[ChildAssoc]:
        """
        List the children of a node in association order.

        Args:
            ctx: Security context
            parent: Parent node
            max_results: Return at most this many associations (None = all)
        """
        pass

    @abstractmethod
    def count_children(self, ctx: SecurityContext, parent: NodeRef) -> int:
        """Number of direct children of a node."""
        pass

    @abstractmethod
    def get_property(self, ctx: SecurityContext, node: NodeRef, key: str) -> Any | None:
        """Read a node property. Returns None for unknown nodes or properties."""
        pass

    @abstractmethod
    def get_type(self, ctx: SecurityContext, node: NodeRef) -> str:
        """
        Get a node's type tag.

        Raises:
            UnrecoverableStoreError: If the node does not exist
        """
        pass

    @abstractmethod
    def delete_node(self, ctx: SecurityContext, node: NodeRef) -> DeleteOutcome:
        """
        Permanently delete a node and its descendants.

        Raises:
            TransientStoreConflict: Concurrent modification, safe to retry
            PermissionDeniedError: ctx may not delete the node
            UnrecoverableStoreError: Anything else
        """
        pass

    # -------------------------------------------------------------------------
    # Host-side helpers (used to populate the store, not by the cleaner)
    # -------------------------------------------------------------------------

    @abstractmethod
    def ensure_store(self, store_ref: str) -> NodeRef:
        """Create the store root if missing and return it."""
        pass

    @abstractmethod
    def create_node(
        self,
        ctx: SecurityContext,
        parent: NodeRef,
        node_type: str,
        name: str,
        owner: str | None = None,
    ) -> NodeRef:
        """Create a child node under `parent`."""
        pass

    @abstractmethod
    def archive_node(
        self,
        ctx: SecurityContext,
        node: NodeRef,
        archive_store_ref: str,
        archived_at: datetime | None = None,
    ) -> NodeRef:
        """
        Soft delete a node: move it (with descendants) under the archive root.

        Returns the node's reference in the archive store.
        """
        pass
