# trashcan/services/cleaner.py
"""
Trashcan cleaner: runs one reclamation cycle over the archive store.

A cycle moves through IDLE -> SELECTING -> DELETING -> DONE. Selection runs
as system inside a read-only transaction and produces a fixed list of node
refs; deletion then works through that list in chunks. A failure in either
phase moves the cycle to FAILED and is raised to the caller. Nothing is
carried from one cycle to the next except what the store itself records.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from trashcan.constants import CleanerDefaults, StoreRefs
from trashcan.errors import CycleFailedError, InvalidArgumentError, StoreError
from trashcan.security import SecurityContext, run_as_system
from trashcan.services.batch_deleter import BatchDeleter
from trashcan.services.retention_policy import RetentionPolicy, format_keep_period
from trashcan.services.selector import EligibleItemSelector, SelectionMode, TraversalOrder, TypeFilter
from trashcan.services.transactions import TransactionHelper
from trashcan.store.base import NodeRef, NodeStore

if TYPE_CHECKING:
    from trashcan.config import Settings

logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    """Cleanup cycle states."""

    IDLE = "idle"
    SELECTING = "selecting"
    DELETING = "deleting"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    CycleState.IDLE: {CycleState.SELECTING},
    CycleState.SELECTING: {CycleState.DELETING, CycleState.DONE, CycleState.FAILED},
    CycleState.DELETING: {CycleState.DONE, CycleState.FAILED},
    CycleState.DONE: set(),
    CycleState.FAILED: set(),
}


@dataclass
class CycleResult:
    """Counts reported by one cycle."""

    state: CycleState = CycleState.IDLE
    dry_run: bool = False
    observed: int = 0               # Nodes in the trashcan when the cycle started
    selected: int = 0
    deleted: int = 0
    not_found: int = 0              # Selected nodes that were already gone
    remaining: int | None = None    # Nodes left afterwards; None if the cycle failed or the recount did
    chunks: int = 0                 # Committed delete chunks
    duration_seconds: float = 0.0
    error: str | None = None
    victims: list[str] = field(default_factory=list)  # Only filled in by preview()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class TrashcanCleaner:
    """
    Cleans the archive store without depending on searches.

    Configuration:
    - max_items_per_cycle: nodes deleted at most per clean() call (default 1000)
    - keep_period: ISO-8601 duration nodes stay in the trashcan; non-positive
      makes every archived node eligible
    - sub_batch_size: nodes deleted per transaction (default 100)
    - selection_mode / traversal_order: see EligibleItemSelector
    """

    def __init__(
        self,
        store: NodeStore,
        transaction_helper: TransactionHelper | None = None,
        max_items_per_cycle: int = CleanerDefaults.MAX_ITEMS_PER_CYCLE,
        keep_period: str | timedelta = CleanerDefaults.KEEP_PERIOD,
        sub_batch_size: int = CleanerDefaults.SUB_BATCH_SIZE,
        selection_mode: SelectionMode | str = SelectionMode.FULL,
        traversal_order: TraversalOrder | str = TraversalOrder.OLDEST_FIRST,
        archive_store_ref: str = StoreRefs.ARCHIVE,
        type_filter: TypeFilter | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if not isinstance(max_items_per_cycle, int) or max_items_per_cycle < 0:
            raise InvalidArgumentError(f"max_items_per_cycle must be a non-negative integer, got {max_items_per_cycle!r}")
        if not isinstance(sub_batch_size, int) or sub_batch_size < 1:
            raise InvalidArgumentError(f"sub_batch_size must be a positive integer, got {sub_batch_size!r}")
        if not archive_store_ref:
            raise InvalidArgumentError("archive_store_ref is required")

        try:
            mode = SelectionMode(selection_mode)
            order = TraversalOrder(traversal_order)
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        self._store = store
        self._transactions = transaction_helper or TransactionHelper(store)
        self.max_items_per_cycle = max_items_per_cycle
        self.policy = RetentionPolicy.from_duration(keep_period)
        self.sub_batch_size = sub_batch_size
        self.archive_store_ref = archive_store_ref
        self._clock = clock

        self._selector = EligibleItemSelector(
            store,
            self.policy,
            archive_store_ref=archive_store_ref,
            mode=mode,
            order=order,
            type_filter=type_filter,
            clock=clock,
        )
        self._deleter = BatchDeleter(store, self._transactions, sub_batch_size=sub_batch_size)
        self._state = CycleState.IDLE

    @classmethod
    def from_settings(
        cls,
        store: NodeStore,
        settings: "Settings | None" = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "TrashcanCleaner":
        """Build a cleaner from application settings."""
        if settings is None:
            from trashcan.config import get_settings

            settings = get_settings()

        transactions = TransactionHelper(
            store,
            max_retries=settings.TRASHCAN_MAX_RETRIES,
            min_wait=settings.TRASHCAN_RETRY_MIN_WAIT,
            max_wait=settings.TRASHCAN_RETRY_MAX_WAIT,
        )
        return cls(
            store,
            transactions,
            max_items_per_cycle=settings.TRASHCAN_MAX_ITEMS_PER_CYCLE,
            keep_period=settings.TRASHCAN_KEEP_PERIOD,
            sub_batch_size=settings.TRASHCAN_SUB_BATCH_SIZE,
            selection_mode=settings.TRASHCAN_SELECTION_MODE,
            traversal_order=settings.TRASHCAN_TRAVERSAL_ORDER,
            archive_store_ref=settings.TRASHCAN_ARCHIVE_STORE,
            clock=clock,
        )

    def replace(self, **changes: Any) -> "TrashcanCleaner":
        """Return a cleaner sharing this one's store and transactions, with some settings changed."""
        config = {
            "max_items_per_cycle": self.max_items_per_cycle,
            "keep_period": self.policy.keep_period,
            "sub_batch_size": self.sub_batch_size,
            "selection_mode": self.selection_mode,
            "traversal_order": self.traversal_order,
            "archive_store_ref": self.archive_store_ref,
            "type_filter": self._selector.type_filter,
            "clock": self._clock,
        }
        config.update(changes)
        return TrashcanCleaner(self._store, self._transactions, **config)

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def keep_period_iso(self) -> str:
        return format_keep_period(self.policy.keep_period)

    @property
    def selection_mode(self) -> SelectionMode:
        return self._selector.mode

    @property
    def traversal_order(self) -> TraversalOrder:
        return self._selector.order

    def describe(self) -> dict[str, Any]:
        """Active configuration, for status output."""
        return {
            "archive_store": self.archive_store_ref,
            "max_items_per_cycle": self.max_items_per_cycle,
            "keep_period": self.keep_period_iso,
            "retention_enabled": self.policy.enabled,
            "sub_batch_size": self.sub_batch_size,
            "selection_mode": self.selection_mode.value,
            "traversal_order": self.traversal_order.value,
            "max_retries": self._transactions.max_retries,
        }

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def count_pending(self) -> int:
        """Number of nodes in the trashcan, unfiltered."""
        return run_as_system(
            lambda ctx: self._transactions.do_in_transaction(
                lambda: self._count(ctx),
                read_only=True,
                name="count trashcan nodes",
            )
        )

    def clean(self) -> CycleResult:
        """
        Run one cleanup cycle.

        Raises:
            CycleFailedError: A delete chunk failed; earlier chunks stay deleted
            StoreError: Selection or the initial count failed; nothing was deleted
        """
        started = time.perf_counter()
        self._state = CycleState.IDLE
        result = CycleResult()

        logger.debug("Running TrashcanCleaner")

        try:
            self._transition(CycleState.SELECTING)
            result.observed = self.count_pending()
            node_refs = self._select()
            result.selected = len(node_refs)
            logger.debug(f"Number of nodes to delete: {result.selected}", extra={"selected": result.selected})

            self._transition(CycleState.DELETING)
            deletion = self._deleter.delete_all(node_refs)
            result.deleted = deletion.deleted_count
            result.not_found = deletion.not_found_count
            result.chunks = deletion.chunks_committed

            if deletion.error is not None:
                raise CycleFailedError(
                    f"Trashcan cleaning stopped after {deletion.chunks_committed} of "
                    f"{deletion.chunks_attempted} chunks: {deletion.error}",
                    result,
                ) from deletion.error
        except Exception as e:
            phase = self._state.value
            self._transition(CycleState.FAILED)
            result.state = CycleState.FAILED
            result.error = str(e)
            result.duration_seconds = round(time.perf_counter() - started, 3)
            logger.error(
                f"Trashcan cleaning failed while {phase}: {e}",
                extra={"event": "cycle_failed", "deleted": result.deleted, "selected": result.selected},
            )
            raise

        # Every chunk is committed; a failed recount only loses the remaining figure
        try:
            result.remaining = self.count_pending()
        except StoreError as e:
            logger.warning(
                f"Could not count remaining trashcan nodes: {e}",
                extra={"event": "recount_failed", "deleted": result.deleted},
            )

        self._transition(CycleState.DONE)
        result.state = CycleState.DONE
        result.duration_seconds = round(time.perf_counter() - started, 3)

        logger.info(
            f"TrashcanCleaner finished: {result.deleted} deleted, {result.not_found} already gone, "
            f"{result.remaining} remaining",
            extra={
                "event": "cycle_complete",
                "selected": result.selected,
                "deleted": result.deleted,
                "not_found": result.not_found,
                "remaining": result.remaining,
            },
        )
        return result

    def preview(self) -> CycleResult:
        """Run selection only and report what clean() would delete."""
        started = time.perf_counter()
        self._state = CycleState.IDLE
        result = CycleResult(dry_run=True)

        try:
            self._transition(CycleState.SELECTING)
            result.observed = self.count_pending()
            node_refs = self._select()
        except Exception:
            self._transition(CycleState.FAILED)
            raise

        result.selected = len(node_refs)
        result.remaining = result.observed
        result.victims = [str(ref) for ref in node_refs]
        self._transition(CycleState.DONE)
        result.state = CycleState.DONE
        result.duration_seconds = round(time.perf_counter() - started, 3)

        logger.info(f"Trashcan preview: {result.selected} of {result.observed} nodes would be deleted")
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _count(self, ctx: SecurityContext) -> int:
        root = self._store.get_root_node(ctx, self.archive_store_ref)
        return self._store.count_children(ctx, root)

    def _select(self) -> list[NodeRef]:
        return run_as_system(
            lambda ctx: self._transactions.do_in_transaction(
                lambda: self._selector.select(ctx, self.max_items_per_cycle),
                read_only=True,
                retriable=True,
                name="select trashcan nodes",
            )
        )

    def _transition(self, new_state: CycleState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid cycle transition {self._state.value} -> {new_state.value}")
        logger.debug(f"Cycle state {self._state.value} -> {new_state.value}", extra={"state": new_state.value})
        self._state = new_state
