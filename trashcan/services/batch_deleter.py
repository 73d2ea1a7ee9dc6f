# trashcan/services/batch_deleter.py
"""
Chunked, transactional deletion of selected nodes.

Handles:
- Splitting the selection into chunks of `sub_batch_size`
- One retriable transaction per chunk, run as system
- Treating already-deleted nodes as a no-op
- Stopping at the first failed chunk while keeping committed chunks
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from trashcan.constants import CleanerDefaults
from trashcan.errors import InvalidArgumentError, StoreError
from trashcan.logging_config import ProgressTracker
from trashcan.security import SecurityContext, run_as_system
from trashcan.services.transactions import TransactionHelper
from trashcan.store.base import DeleteOutcome, NodeRef, NodeStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split `items` into consecutive chunks of `size`; the last may be shorter."""
    if size < 1:
        raise InvalidArgumentError(f"Chunk size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


@dataclass
class DeletionResult:
    """Result of a delete_all() call."""

    deleted_count: int = 0
    not_found_count: int = 0
    chunks_attempted: int = 0
    chunks_committed: int = 0
    error: StoreError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class BatchDeleter:
    """Deletes node lists chunk by chunk, each chunk in its own transaction."""

    def __init__(
        self,
        store: NodeStore,
        transactions: TransactionHelper,
        sub_batch_size: int = CleanerDefaults.SUB_BATCH_SIZE,
    ):
        if sub_batch_size < 1:
            raise InvalidArgumentError(f"sub_batch_size must be >= 1, got {sub_batch_size}")

        self._store = store
        self._transactions = transactions
        self.sub_batch_size = sub_batch_size

    def delete_all(self, node_refs: Sequence[NodeRef], sub_batch_size: int | None = None) -> DeletionResult:
        """
        Delete every node in `node_refs`, sequentially, chunk by chunk.

        A chunk that keeps conflicting past the retry limit, or fails for any
        other store reason, ends the run: later chunks are not started and the
        failure is returned in `DeletionResult.error`.
        """
        size = self.sub_batch_size if sub_batch_size is None else sub_batch_size
        chunks = partition(node_refs, size)
        result = DeletionResult()

        if not chunks:
            return result

        tracker = ProgressTracker(
            total=len(chunks),
            stage="trashcan_delete",
            log_every=CleanerDefaults.PROGRESS_LOG_EVERY,
        )

        for index, chunk in enumerate(chunks):
            result.chunks_attempted += 1
            try:
                deleted, not_found = run_as_system(lambda ctx: self._delete_chunk_in_transaction(ctx, chunk, index))
            except StoreError as e:
                logger.error(
                    f"Chunk {index + 1}/{len(chunks)} failed, stopping deletion: {e}",
                    extra={"event": "chunk_failed", "chunk_index": index, "chunk_size": len(chunk)},
                )
                result.error = e
                tracker.increment(success=False)
                break

            result.deleted_count += deleted
            result.not_found_count += not_found
            result.chunks_committed += 1
            tracker.increment(success=True)

        tracker.finish()
        return result

    def _delete_chunk_in_transaction(
        self,
        ctx: SecurityContext,
        chunk: list[NodeRef],
        index: int,
    ) -> tuple[int, int]:
        return self._transactions.do_in_transaction(
            lambda: self._delete_chunk(ctx, chunk),
            read_only=False,
            retriable=True,
            name=f"delete chunk {index + 1}",
        )

    def _delete_chunk(self, ctx: SecurityContext, chunk: list[NodeRef]) -> tuple[int, int]:
        """Delete one chunk. Counts start from zero on every attempt."""
        deleted = 0
        not_found = 0
        for node_ref in chunk:
            outcome = self._store.delete_node(ctx, node_ref)
            if outcome == DeleteOutcome.DELETED:
                deleted += 1
            else:
                not_found += 1
                logger.debug(f"Node already gone: {node_ref}", extra={"node_id": node_ref.node_id})
        return deleted, not_found
