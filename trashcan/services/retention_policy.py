# trashcan/services/retention_policy.py
"""
Retention policy: decides whether an archived node may be reclaimed.

Rules:
- keep period <= 0 disables retention, every node is eligible
- otherwise a node is eligible iff archived_at < now - keep_period
  (a node archived exactly at the cutoff is kept)
- a missing archival date counts as the epoch, so the node is eligible
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pydantic import TypeAdapter, ValidationError

from trashcan.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_duration_adapter = TypeAdapter(timedelta)


def parse_keep_period(value: str | timedelta) -> timedelta:
    """
    Parse an ISO-8601 duration such as "PT1S", "P7D" or "-PT5M".

    Raises:
        InvalidArgumentError: If the value is not a valid duration
    """
    if isinstance(value, timedelta):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"Keep period must be an ISO-8601 duration string, got {value!r}")

    try:
        return _duration_adapter.validate_python(value.strip())
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid keep period '{value}': {e.errors()[0]['msg']}") from e


def format_keep_period(value: timedelta) -> str:
    """Render a keep period as an ISO-8601 duration, e.g. "P7D" or "-PT5S"."""
    return _duration_adapter.dump_python(value, mode="json")


def _as_utc(moment: datetime) -> datetime:
    """Naive datetimes are stored in UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def is_eligible(archived_at: datetime | None, now: datetime, keep_period: timedelta) -> bool:
    """Check whether a node archived at `archived_at` may be deleted at `now`."""
    if keep_period <= timedelta(0):
        return True

    archived = EPOCH if archived_at is None else _as_utc(archived_at)
    return archived < _as_utc(now) - keep_period


@dataclass(frozen=True)
class RetentionPolicy:
    """Immutable keep-period policy shared by every cycle of a cleaner."""

    keep_period: timedelta

    @classmethod
    def from_duration(cls, value: str | timedelta) -> "RetentionPolicy":
        return cls(keep_period=parse_keep_period(value))

    @property
    def enabled(self) -> bool:
        return self.keep_period > timedelta(0)

    def cutoff(self, now: datetime) -> datetime | None:
        """Nodes archived strictly before the cutoff are eligible. None when disabled."""
        if not self.enabled:
            return None
        return _as_utc(now) - self.keep_period

    def is_eligible(self, archived_at: datetime | None, now: datetime) -> bool:
        return is_eligible(archived_at, now, self.keep_period)
