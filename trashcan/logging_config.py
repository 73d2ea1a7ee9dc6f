"""
Structured JSON logging for cleanup cycle observability.

Provides structured logging with trace IDs for correlating the log lines of
one cleanup cycle, plus a stage timer and a chunk progress tracker.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Context variables for trace correlation
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
stage_var: ContextVar[str | None] = ContextVar("stage", default=None)
component_var: ContextVar[str | None] = ContextVar("component", default=None)

# Extra record attributes copied into the JSON payload
EXTRA_FIELDS = (
    "event",
    "duration_ms",
    "items_processed",
    "items_total",
    "items_succeeded",
    "items_failed",
    "chunk_index",
    "chunk_size",
    "node_id",
    "store_ref",
    "selected",
    "deleted",
    "not_found",
    "remaining",
    "state",
    "attempt",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "trace_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        trace_id = trace_id_var.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        stage = stage_var.get()
        if stage:
            log_data["stage"] = stage

        component = component_var.get()
        if component:
            log_data["component"] = component

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Structured Logger
# -----------------------------------------------------------------------------


class StructuredLogger:
    """
    Logger that tags every message with an event type.

    Also owns the trace context of the current cycle.
    """

    def __init__(self, name: str = "trashcan"):
        self._logger = logging.getLogger(name)

    def set_context(self, trace_id: str, stage: str | None = None, component: str | None = None) -> None:
        """Set logging context for the current execution."""
        trace_id_var.set(trace_id)
        if stage:
            stage_var.set(stage)
        if component:
            component_var.set(component)

    def clear_context(self) -> None:
        """Clear logging context."""
        trace_id_var.set(None)
        stage_var.set(None)
        component_var.set(None)

    def info(self, event: str, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, event, message, **kwargs)

    def warning(self, event: str, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, event, message, **kwargs)

    def error(self, event: str, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, event, message, **kwargs)

    def debug(self, event: str, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, event, message, **kwargs)

    def _log(self, level: int, event: str, message: str, **kwargs: Any) -> None:
        extra = {"event": event}
        extra.update(kwargs)
        self._logger.log(level, message, extra=extra)


cleaner_logger = StructuredLogger()


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_stage(stage: str, trace_id: str | None = None):
    """
    Context manager for stage-level logging.

    Logs stage start and end with duration. Failures are logged and re-raised.

    Usage:
        with log_stage("trashcan_clean", trace_id=trace_id):
            cleaner.clean()
    """
    if trace_id:
        trace_id_var.set(trace_id)
    stage_var.set(stage)

    start_time = time.time()
    logger = logging.getLogger("trashcan.stage")

    logger.info(f"Stage {stage} started", extra={"event": "stage_start"})

    try:
        yield
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Stage {stage} completed",
            extra={"event": "stage_complete", "duration_ms": duration_ms},
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Stage {stage} failed: {e}",
            extra={"event": "stage_failed", "duration_ms": duration_ms},
            exc_info=True,
        )
        raise
    finally:
        stage_var.set(None)


# -----------------------------------------------------------------------------
# Progress Tracker
# -----------------------------------------------------------------------------


@dataclass
class ProgressTracker:
    """
    Track progress for batch operations with periodic logging.

    Usage:
        tracker = ProgressTracker(total=len(chunks), stage="trashcan_delete")
        for chunk in chunks:
            ok = delete(chunk)
            tracker.increment(success=ok)
        tracker.finish()
    """

    total: int
    stage: str
    log_every: int = 10

    processed: int = field(default=0, init=False)
    succeeded: int = field(default=0, init=False)
    failed: int = field(default=0, init=False)
    _start_time: float = field(default_factory=time.time, init=False)
    _logger: logging.Logger = field(init=False)

    def __post_init__(self):
        self._logger = logging.getLogger("trashcan.progress")
        if self.log_every < 1:
            self.log_every = 1

    def increment(self, success: bool = True) -> None:
        """Increment progress counter."""
        self.processed += 1
        if success:
            self.succeeded += 1
        else:
            self.failed += 1

        if self.processed % self.log_every == 0 or self.processed == self.total:
            self._log_progress()

    def _log_progress(self) -> None:
        elapsed = time.time() - self._start_time
        rate = self.processed / elapsed if elapsed > 0 else 0

        self._logger.info(
            f"{self.stage}: {self.processed}/{self.total} "
            f"({self.succeeded} ok, {self.failed} failed) [{rate:.1f}/s]",
            extra={
                "event": "progress_update",
                "items_processed": self.processed,
                "items_total": self.total,
                "items_succeeded": self.succeeded,
                "items_failed": self.failed,
            },
        )

    def finish(self) -> dict:
        """Finalize progress tracking and return summary."""
        elapsed = time.time() - self._start_time

        self._logger.debug(
            f"{self.stage}: Completed {self.processed}/{self.total} "
            f"({self.succeeded} ok, {self.failed} failed) in {elapsed:.1f}s",
            extra={
                "event": "progress_complete",
                "items_processed": self.processed,
                "items_total": self.total,
                "items_succeeded": self.succeeded,
                "items_failed": self.failed,
                "duration_ms": int(elapsed * 1000),
            },
        )

        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_seconds": round(elapsed, 1),
        }
