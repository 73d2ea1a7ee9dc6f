# trashcan/store/memory_provider.py
"""
In-memory node store for development and testing.

Mimics the SQL store's behavior (association order, cascading deletes,
all-or-nothing transactions) without a database. Conflicts and failures can
be injected per node to exercise retry paths.
NOT for production use.
"""

import copy
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from trashcan.constants import NodeProperties, NodeTypes
from trashcan.errors import PermissionDeniedError, TransientStoreConflict, UnrecoverableStoreError
from trashcan.security import SecurityContext
from trashcan.store.base import ChildAssoc, DeleteOutcome, NodeRef, NodeStore

logger = logging.getLogger(__name__)


@dataclass
class _NodeRecord:
    node_id: int
    store_ref: str
    parent_id: int | None
    node_type: str
    name: str
    owner: str | None = None
    archived_at: datetime | None = None
    assoc_index: int = 0


class InMemoryNodeStore(NodeStore):
    """
    Dictionary-backed node store.

    Transactions snapshot the node table on entry and restore it when the
    body raises, so a failed transaction leaves no partial writes. One
    transaction runs at a time across threads.
    """

    def __init__(self):
        self._nodes: dict[int, _NodeRecord] = {}
        self._next_id = 1
        self._next_assoc_index = 1
        self._lock = threading.RLock()
        self._local = threading.local()

        # Failure injection: node_id -> remaining conflicts / permanent errors
        self._conflicts: dict[int, int] = {}
        self._failures: dict[int, str] = {}

        # Instrumentation for tests
        self.delete_calls: list[NodeRef] = []
        self.listing_calls: list[int | None] = []
        self.commits = 0
        self.rollbacks = 0

    @property
    def name(self) -> str:
        return "memory"

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self, read_only: bool = False) -> Iterator[None]:
        """
        Snapshot on entry, restore on failure.

        Nested calls on the same thread join the outer transaction; other
        threads wait until it finishes.
        """
        if getattr(self._local, "active", False):
            if self._local.read_only and not read_only:
                raise UnrecoverableStoreError("Cannot open a read-write transaction inside a read-only one")
            yield
            return

        with self._lock:
            snapshot = (copy.deepcopy(self._nodes), self._next_id, self._next_assoc_index)
            self._local.active = True
            self._local.read_only = read_only
            try:
                yield
                self.commits += 1
            except BaseException:
                self._nodes, self._next_id, self._next_assoc_index = snapshot
                self.rollbacks += 1
                raise
            finally:
                self._local.active = False
                self._local.read_only = False

    @contextmanager
    def _write_scope(self) -> Iterator[None]:
        with self.transaction(read_only=False):
            yield

    # -------------------------------------------------------------------------
    # Failure injection
    # -------------------------------------------------------------------------

    def inject_conflict(self, node: NodeRef, times: int = 1) -> None:
        """Make the next `times` deletes of `node` raise TransientStoreConflict."""
        self._conflicts[node.node_id] = times

    def inject_failure(self, node: NodeRef, message: str = "Storage failure") -> None:
        """Make every delete of `node` raise UnrecoverableStoreError."""
        self._failures[node.node_id] = message

    def clear_injected_failures(self) -> None:
        self._conflicts.clear()
        self._failures.clear()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _get(self, node: NodeRef) -> _NodeRecord | None:
        record = self._nodes.get(node.node_id)
        if record is None or record.store_ref != node.store_ref:
            return None
        return record

    def _ref(self, record: _NodeRecord) -> NodeRef:
        return NodeRef(store_ref=record.store_ref, node_id=record.node_id)

    def _find_root(self, store_ref: str) -> _NodeRecord | None:
        for record in self._nodes.values():
            if record.store_ref == store_ref and record.parent_id is None:
                return record
        return None

    def _children(self, parent_id: int) -> list[_NodeRecord]:
        children = [r for r in self._nodes.values() if r.parent_id == parent_id]
        return sorted(children, key=lambda r: (r.assoc_index, r.node_id))

    def get_root_node(self, ctx: SecurityContext, store_ref: str) -> NodeRef:
        root = self._find_root(store_ref)
        if root is None:
            raise UnrecoverableStoreError(f"Store not found: {store_ref}")
        return self._ref(root)

    def get_child_assocs(
        self,
        ctx: SecurityContext,
        parent: NodeRef,
        max_results: int | None = None,
    ) -> list[ChildAssoc]:
        self.listing_calls.append(max_results)
        with self._lock:
            children = self._children(parent.node_id)
        if max_results is not None:
            children = children[:max_results]
        return [
            ChildAssoc(
                parent_ref=parent,
                child_ref=self._ref(child),
                node_type=child.node_type,
                archived_at=child.archived_at,
            )
            for child in children
        ]

    def count_children(self, ctx: SecurityContext, parent: NodeRef) -> int:
        with self._lock:
            return sum(1 for r in self._nodes.values() if r.parent_id == parent.node_id)

    def get_property(self, ctx: SecurityContext, node: NodeRef, key: str) -> Any | None:
        record = self._get(node)
        if record is None:
            return None
        if key == NodeProperties.ARCHIVED_DATE:
            return record.archived_at
        if key == NodeProperties.NAME:
            return record.name
        if key == NodeProperties.OWNER:
            return record.owner
        return None

    def get_type(self, ctx: SecurityContext, node: NodeRef) -> str:
        record = self._get(node)
        if record is None:
            raise UnrecoverableStoreError(f"Node not found: {node}")
        return record.node_type

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def delete_node(self, ctx: SecurityContext, node: NodeRef) -> DeleteOutcome:
        with self._write_scope():
            self.delete_calls.append(node)

            if node.node_id in self._failures:
                raise UnrecoverableStoreError(f"{self._failures[node.node_id]}: {node}")

            remaining = self._conflicts.get(node.node_id, 0)
            if remaining > 0:
                self._conflicts[node.node_id] = remaining - 1
                raise TransientStoreConflict(f"Concurrent modification of {node}")

            record = self._get(node)
            if record is None:
                return DeleteOutcome.NOT_FOUND
            if record.parent_id is None:
                raise UnrecoverableStoreError(f"Cannot delete store root {node}")
            if not ctx.can_modify(record.owner):
                raise PermissionDeniedError(f"{ctx.principal} may not delete {node}")

            for node_id in self._subtree_ids(record.node_id):
                del self._nodes[node_id]
            return DeleteOutcome.DELETED

    def _subtree_ids(self, node_id: int) -> list[int]:
        ids = [node_id]
        for child in self._children(node_id):
            ids.extend(self._subtree_ids(child.node_id))
        return ids

    def ensure_store(self, store_ref: str) -> NodeRef:
        with self._lock:
            root = self._find_root(store_ref)
            if root is not None:
                return self._ref(root)
            with self._write_scope():
                root = self._insert(store_ref, None, NodeTypes.STORE_ROOT, store_ref, owner=None)
            return self._ref(root)

    def _insert(
        self,
        store_ref: str,
        parent_id: int | None,
        node_type: str,
        name: str,
        owner: str | None,
    ) -> _NodeRecord:
        record = _NodeRecord(
            node_id=self._next_id,
            store_ref=store_ref,
            parent_id=parent_id,
            node_type=node_type,
            name=name,
            owner=owner,
            assoc_index=self._next_assoc_index,
        )
        self._nodes[record.node_id] = record
        self._next_id += 1
        self._next_assoc_index += 1
        return record

    def create_node(
        self,
        ctx: SecurityContext,
        parent: NodeRef,
        node_type: str,
        name: str,
        owner: str | None = None,
    ) -> NodeRef:
        with self._write_scope():
            if self._get(parent) is None:
                raise UnrecoverableStoreError(f"Parent not found: {parent}")
            owner = owner if owner is not None else (None if ctx.is_system else ctx.principal)
            record = self._insert(parent.store_ref, parent.node_id, node_type, name, owner)
            return self._ref(record)

    def archive_node(
        self,
        ctx: SecurityContext,
        node: NodeRef,
        archive_store_ref: str,
        archived_at: datetime | None = None,
    ) -> NodeRef:
        with self._write_scope():
            record = self._get(node)
            if record is None:
                raise UnrecoverableStoreError(f"Node not found: {node}")
            if not ctx.can_modify(record.owner):
                raise PermissionDeniedError(f"{ctx.principal} may not archive {node}")

            archive_root = self._find_root(archive_store_ref)
            if archive_root is None:
                archive_root = self._insert(archive_store_ref, None, NodeTypes.STORE_ROOT, archive_store_ref, None)

            for node_id in self._subtree_ids(record.node_id):
                self._nodes[node_id].store_ref = archive_store_ref
            record.parent_id = archive_root.node_id
            record.assoc_index = self._next_assoc_index
            record.archived_at = archived_at or datetime.now(UTC)
            self._next_assoc_index += 1

            logger.debug(f"Archived node {node} as {self._ref(record)}")
            return self._ref(record)
