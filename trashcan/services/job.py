# trashcan/services/job.py
"""
Scheduler entry point.

The external scheduler owns timing and mutual exclusion; it calls
run_cleaner_job() once per tick. Each call runs exactly one cycle.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Any

from trashcan.logging_config import cleaner_logger, log_stage
from trashcan.services.cleaner import TrashcanCleaner

if TYPE_CHECKING:
    from trashcan.config import Settings

logger = logging.getLogger(__name__)


def build_cleaner(settings: "Settings | None" = None) -> TrashcanCleaner:
    """Create a cleaner over the configured node store, making sure the archive store exists."""
    from trashcan.config import get_settings
    from trashcan.store import get_node_store

    settings = settings or get_settings()
    store = get_node_store(settings.TRASHCAN_STORE_PROVIDER)
    store.ensure_store(settings.TRASHCAN_ARCHIVE_STORE)
    return TrashcanCleaner.from_settings(store, settings)


def run_cleaner_job(cleaner: TrashcanCleaner, trace_id: str | None = None) -> dict[str, Any]:
    """
    Run one cleanup cycle with trace context and stage timing.

    Returns:
        The cycle result as a dict, plus the trace id

    Raises:
        CycleFailedError / StoreError: Whatever clean() raised, after logging
    """
    trace_id = trace_id or str(uuid.uuid4())
    cleaner_logger.set_context(trace_id, component="trashcan_cleaner")

    try:
        with log_stage("trashcan_clean", trace_id=trace_id):
            result = cleaner.clean()
    finally:
        cleaner_logger.clear_context()

    summary = result.to_dict()
    summary["trace_id"] = trace_id
    return summary
