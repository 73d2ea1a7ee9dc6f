# trashcan/services/resilience.py
"""
Retry helpers for store operations.

Transient store conflicts (lock timeouts, concurrent modification) are
retried with exponential backoff; everything else propagates immediately.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, min_wait: float, max_wait: float) -> float:
    """Delay before retrying after the given (1-based) failed attempt."""
    return min(min_wait * (2 ** (attempt - 1)), max_wait)


def with_sync_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    name: str | None = None,
) -> Callable:
    """
    Decorator for sync functions with exponential backoff retry.

    Args:
        max_attempts: Total attempts, including the first call
        min_wait: Wait before the second attempt (seconds)
        max_wait: Maximum wait between attempts (seconds)
        retry_exceptions: Exception types that trigger a retry
        sleep: Sleep function (injectable for tests)
        name: Operation name used in log messages (defaults to the function name)

    Usage:
        @with_sync_retry(max_attempts=3, retry_exceptions=(TransientStoreConflict,))
        def delete_chunk() -> int:
            ...
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        label = name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retry_exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            f"{label} failed after {max_attempts} attempts: {e}",
                            extra={"event": "retry_exhausted", "attempt": attempt},
                        )
                        raise

                    wait_time = backoff_delay(attempt, min_wait, max_wait)
                    logger.warning(
                        f"{label} attempt {attempt} failed: {e}. Retrying in {wait_time:.1f}s...",
                        extra={"event": "retry_scheduled", "attempt": attempt},
                    )
                    sleep(wait_time)

            raise RuntimeError(f"{label} failed without exception")

        return wrapper

    return decorator
