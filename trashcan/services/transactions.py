# trashcan/services/transactions.py
"""
Retrying transaction helper.

Runs a unit of work inside a store transaction. When the work (or the
commit) raises TransientStoreConflict the transaction is rolled back and the
whole unit is run again, up to `max_retries` attempts. The work must
therefore compute its result from scratch on every attempt.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from trashcan.constants import CleanerDefaults
from trashcan.errors import InvalidArgumentError, TransientStoreConflict
from trashcan.services.resilience import with_sync_retry
from trashcan.store.base import NodeStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionHelper:
    """Wraps NodeStore.transaction() with bounded retries on conflicts."""

    def __init__(
        self,
        store: NodeStore,
        max_retries: int = CleanerDefaults.MAX_RETRIES,
        min_wait: float = CleanerDefaults.RETRY_MIN_WAIT_SECONDS,
        max_wait: float = CleanerDefaults.RETRY_MAX_WAIT_SECONDS,
        sleep: Callable[[float], None] | None = None,
    ):
        if max_retries < 1:
            raise InvalidArgumentError(f"max_retries must be >= 1, got {max_retries}")
        if min_wait < 0 or max_wait < 0:
            raise InvalidArgumentError("Retry waits must be non-negative")

        self._store = store
        self.max_retries = max_retries
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._sleep = sleep

    def do_in_transaction(
        self,
        work: Callable[[], T],
        read_only: bool = False,
        retriable: bool = True,
        name: str = "transaction",
    ) -> T:
        """
        Run `work` in a transaction, committing on success.

        Args:
            work: Unit of work; re-run from scratch on each retry
            read_only: Open a read-only transaction
            retriable: Retry on TransientStoreConflict
            name: Label used in retry log messages

        Raises:
            TransientStoreConflict: Conflicts persisted through every attempt
            Exception: Anything else raised by `work` or the store, unchanged
        """

        def attempt() -> T:
            with self._store.transaction(read_only=read_only):
                return work()

        if not retriable:
            return attempt()

        retry_kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        retrying = with_sync_retry(
            max_attempts=self.max_retries,
            min_wait=self.min_wait,
            max_wait=self.max_wait,
            retry_exceptions=(TransientStoreConflict,),
            name=name,
            **retry_kwargs,
        )(attempt)
        return retrying()
