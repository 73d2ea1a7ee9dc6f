# trashcan/store/sql_provider.py
"""
SQLAlchemy-backed node store.

One session per transaction, held per thread so concurrent callers never
share one. Lock and serialization failures are reported
as TransientStoreConflict so callers can retry; every other database error
becomes UnrecoverableStoreError.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from trashcan.constants import NodeProperties, NodeTypes
from trashcan.errors import (
    PermissionDeniedError,
    StoreError,
    TransientStoreConflict,
    UnrecoverableStoreError,
)
from trashcan.models import Node
from trashcan.security import SecurityContext
from trashcan.store.base import ChildAssoc, DeleteOutcome, NodeRef, NodeStore

logger = logging.getLogger(__name__)

# Substrings of driver messages that indicate a retryable conflict
TRANSIENT_ERROR_MARKERS = (
    "database is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
    "lock timeout",
)


def translate_error(error: SQLAlchemyError) -> StoreError:
    """Map a SQLAlchemy error to the store error hierarchy."""
    if isinstance(error, StaleDataError):
        return TransientStoreConflict(f"Concurrent modification: {error}")

    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return TransientStoreConflict(f"Connection lost: {error}")

    if isinstance(error, OperationalError):
        message = str(error).lower()
        if any(marker in message for marker in TRANSIENT_ERROR_MARKERS):
            return TransientStoreConflict(f"Lock conflict: {error}")

    return UnrecoverableStoreError(f"Database error: {error}")


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored values are UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class SqlNodeStore(NodeStore):
    """
    Node store on top of the `nodes` table.

    Configuration:
    - session_factory: SQLAlchemy sessionmaker (defaults to trashcan.database.SessionLocal)
    """

    def __init__(self, session_factory: sessionmaker | None = None):
        if session_factory is None:
            from trashcan.database import SessionLocal

            session_factory = SessionLocal

        self._session_factory = session_factory
        # Open session and read-only flag, per thread
        self._local = threading.local()

    @property
    def name(self) -> str:
        return "sql"

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @property
    def _session(self) -> Session | None:
        return getattr(self._local, "session", None)

    @contextmanager
    def transaction(self, read_only: bool = False) -> Iterator[None]:
        """Commit on success, roll back on any exception. Nested calls on the same thread join."""
        if self._session is not None:
            if self._local.read_only and not read_only:
                raise UnrecoverableStoreError("Cannot open a read-write transaction inside a read-only one")
            yield
            return

        session = self._session_factory()
        self._local.session = session
        self._local.read_only = read_only
        try:
            yield
            if read_only:
                session.rollback()
            else:
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise translate_error(e) from e
        except BaseException:
            session.rollback()
            raise
        finally:
            self._local.session = None
            self._local.read_only = False
            session.close()

    @contextmanager
    def _session_scope(self, write: bool = False) -> Iterator[Session]:
        with self.transaction(read_only=not write):
            yield self._session

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def _get(session: Session, node: NodeRef) -> Node | None:
        row = session.get(Node, node.node_id)
        if row is None or row.store_ref != node.store_ref:
            return None
        return row

    @staticmethod
    def _find_root(session: Session, store_ref: str) -> Node | None:
        return (
            session.query(Node)
            .filter(Node.store_ref == store_ref, Node.parent_id.is_(None))
            .order_by(Node.id)
            .first()
        )

    def get_root_node(self, ctx: SecurityContext, store_ref: str) -> NodeRef:
        with self._session_scope() as session:
            root = self._find_root(session, store_ref)
            if root is None:
                raise UnrecoverableStoreError(f"Store not found: {store_ref}")
            return NodeRef(store_ref=root.store_ref, node_id=root.id)

    def get_child_assocs(
        self,
        ctx: SecurityContext,
        parent: NodeRef,
        max_results: int | None = None,
    ) -> list[ChildAssoc]:
        with self._session_scope() as session:
            query = (
                session.query(Node.id, Node.store_ref, Node.node_type, Node.archived_at)
                .filter(Node.parent_id == parent.node_id)
                .order_by(Node.assoc_index, Node.id)
            )
            if max_results is not None:
                query = query.limit(max_results)

            return [
                ChildAssoc(
                    parent_ref=parent,
                    child_ref=NodeRef(store_ref=row.store_ref, node_id=row.id),
                    node_type=row.node_type,
                    archived_at=_as_utc(row.archived_at),
                )
                for row in query.all()
            ]

    def count_children(self, ctx: SecurityContext, parent: NodeRef) -> int:
        with self._session_scope() as session:
            return session.query(func.count(Node.id)).filter(Node.parent_id == parent.node_id).scalar() or 0

    def get_property(self, ctx: SecurityContext, node: NodeRef, key: str) -> Any | None:
        with self._session_scope() as session:
            row = self._get(session, node)
            if row is None:
                return None
            if key == NodeProperties.ARCHIVED_DATE:
                return _as_utc(row.archived_at)
            if key == NodeProperties.NAME:
                return row.name
            if key == NodeProperties.OWNER:
                return row.owner
            return None

    def get_type(self, ctx: SecurityContext, node: NodeRef) -> str:
        with self._session_scope() as session:
            row = self._get(session, node)
            if row is None:
                raise UnrecoverableStoreError(f"Node not found: {node}")
            return row.node_type

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def delete_node(self, ctx: SecurityContext, node: NodeRef) -> DeleteOutcome:
        with self._session_scope(write=True) as session:
            row = self._get(session, node)
            if row is None:
                return DeleteOutcome.NOT_FOUND
            if row.parent_id is None:
                raise UnrecoverableStoreError(f"Cannot delete store root {node}")
            if not ctx.can_modify(row.owner):
                raise PermissionDeniedError(f"{ctx.principal} may not delete {node}")

            # ORM cascade removes descendants
            session.delete(row)
            session.flush()
            return DeleteOutcome.DELETED

    @staticmethod
    def _next_assoc_index(session: Session) -> int:
        return (session.query(func.coalesce(func.max(Node.assoc_index), 0)).scalar() or 0) + 1

    def _get_or_create_root(self, session: Session, store_ref: str) -> Node:
        root = self._find_root(session, store_ref)
        if root is None:
            root = Node(
                store_ref=store_ref,
                parent_id=None,
                assoc_index=self._next_assoc_index(session),
                node_type=NodeTypes.STORE_ROOT,
                name=store_ref,
            )
            session.add(root)
            session.flush()
            logger.info(f"Created store root for {store_ref}")
        return root

    def ensure_store(self, store_ref: str) -> NodeRef:
        with self._session_scope(write=True) as session:
            root = self._get_or_create_root(session, store_ref)
            return NodeRef(store_ref=root.store_ref, node_id=root.id)

    def create_node(
        self,
        ctx: SecurityContext,
        parent: NodeRef,
        node_type: str,
        name: str,
        owner: str | None = None,
    ) -> NodeRef:
        with self._session_scope(write=True) as session:
            parent_row = self._get(session, parent)
            if parent_row is None:
                raise UnrecoverableStoreError(f"Parent not found: {parent}")

            row = Node(
                store_ref=parent_row.store_ref,
                parent_id=parent_row.id,
                assoc_index=self._next_assoc_index(session),
                node_type=node_type,
                name=name,
                owner=owner if owner is not None else (None if ctx.is_system else ctx.principal),
            )
            session.add(row)
            session.flush()
            return NodeRef(store_ref=row.store_ref, node_id=row.id)

    def archive_node(
        self,
        ctx: SecurityContext,
        node: NodeRef,
        archive_store_ref: str,
        archived_at: datetime | None = None,
    ) -> NodeRef:
        with self._session_scope(write=True) as session:
            row = self._get(session, node)
            if row is None:
                raise UnrecoverableStoreError(f"Node not found: {node}")
            if not ctx.can_modify(row.owner):
                raise PermissionDeniedError(f"{ctx.principal} may not archive {node}")

            archive_root = self._get_or_create_root(session, archive_store_ref)

            pending = [row]
            while pending:
                current = pending.pop()
                current.store_ref = archive_store_ref
                pending.extend(current.children)

            row.parent = archive_root
            row.assoc_index = self._next_assoc_index(session)
            row.archived_at = archived_at or datetime.now(UTC)
            session.flush()

            logger.debug(f"Archived node {node} as {archive_store_ref}/{row.id}")
            return NodeRef(store_ref=archive_store_ref, node_id=row.id)
