# trashcan/services/selector.py
"""
Eligible item selection over the archive root's children.

No search index is involved: the selector lists the children of the
archive root, drops protected structural nodes, applies the retention
policy to each remaining child and stops at the requested count.

Modes:
- FULL: list every child, then walk in the configured order until
  `max_count` eligible nodes are found. Finds up to `max_count` eligible
  nodes whenever that many exist.
- BOUNDED: list at most `max_count` children (association order), then
  filter. Cheaper on a large trashcan, but may return fewer than
  `max_count` even when more eligible nodes exist further down.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from trashcan.constants import PROTECTED_NODE_TYPES, NodeProperties, StoreRefs
from trashcan.errors import InvalidArgumentError
from trashcan.security import SecurityContext
from trashcan.services.retention_policy import RetentionPolicy
from trashcan.store.base import ChildAssoc, NodeRef, NodeStore

logger = logging.getLogger(__name__)


class SelectionMode(str, Enum):
    """How much of the archive root is listed per cycle."""

    FULL = "full"
    BOUNDED = "bounded"


class TraversalOrder(str, Enum):
    """Walk order for full-listing selection."""

    OLDEST_FIRST = "oldest_first"  # Drains the backlog from the oldest association
    NEWEST_FIRST = "newest_first"  # Walks back from the most recent association


@dataclass(frozen=True)
class TypeFilter:
    """Deny-list predicate over node type tags."""

    denied: frozenset[str] = field(default_factory=lambda: PROTECTED_NODE_TYPES)

    def allows(self, node_type: str) -> bool:
        return node_type not in self.denied

    def with_denied(self, *node_types: str) -> "TypeFilter":
        """Return a filter that also denies `node_types`."""
        return TypeFilter(denied=self.denied | frozenset(node_types))


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EligibleItemSelector:
    """Selects at most N reclaimable nodes from the archive store."""

    def __init__(
        self,
        store: NodeStore,
        policy: RetentionPolicy,
        archive_store_ref: str = StoreRefs.ARCHIVE,
        mode: SelectionMode = SelectionMode.FULL,
        order: TraversalOrder = TraversalOrder.OLDEST_FIRST,
        type_filter: TypeFilter | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self.policy = policy
        self.archive_store_ref = archive_store_ref
        self.mode = SelectionMode(mode)
        self.order = TraversalOrder(order)
        self.type_filter = type_filter or TypeFilter()
        self._clock = clock or _utcnow

    def select(self, ctx: SecurityContext, max_count: int) -> list[NodeRef]:
        """
        Return up to `max_count` nodes that are eligible right now.

        Every node is judged against the same `now`, read once per call.

        Raises:
            InvalidArgumentError: If max_count is negative
        """
        if max_count < 0:
            raise InvalidArgumentError(f"max_count must be >= 0, got {max_count}")
        if max_count == 0:
            return []

        now = self._clock()
        root = self._store.get_root_node(ctx, self.archive_store_ref)

        if self.mode == SelectionMode.BOUNDED:
            assocs = self._store.get_child_assocs(ctx, root, max_results=max_count)
            candidates: Iterable[ChildAssoc] = assocs
        else:
            assocs = self._store.get_child_assocs(ctx, root)
            candidates = reversed(assocs) if self.order == TraversalOrder.NEWEST_FIRST else assocs

        selected: list[NodeRef] = []
        protected = 0
        retained = 0
        for assoc in candidates:
            if len(selected) >= max_count:
                break
            if not self.type_filter.allows(assoc.node_type):
                protected += 1
                continue
            if self.policy.is_eligible(self._archived_at(ctx, assoc), now):
                selected.append(assoc.child_ref)
            else:
                retained += 1

        logger.debug(
            f"Selected {len(selected)} of {len(assocs)} listed nodes "
            f"(mode={self.mode.value}, protected={protected}, retained={retained})",
            extra={"event": "selection_complete", "selected": len(selected)},
        )
        return selected

    def _archived_at(self, ctx: SecurityContext, assoc: ChildAssoc) -> datetime | None:
        """Archival date from the listing, falling back to the node property."""
        if assoc.archived_at is not None:
            return assoc.archived_at

        value = self._store.get_property(ctx, assoc.child_ref, NodeProperties.ARCHIVED_DATE)
        return value if isinstance(value, datetime) else None
