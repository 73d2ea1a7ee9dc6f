# tests/unit/test_retention_policy.py
"""Unit tests for keep-period parsing and eligibility."""

from datetime import UTC, datetime, timedelta

import pytest

from trashcan.errors import InvalidArgumentError
from trashcan.services.retention_policy import (
    EPOCH,
    RetentionPolicy,
    format_keep_period,
    is_eligible,
    parse_keep_period,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class TestParseKeepPeriod:
    """Tests for parse_keep_period()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("P0D", timedelta(0)),
            ("PT1S", timedelta(seconds=1)),
            ("PT10S", timedelta(seconds=10)),
            ("P1D", timedelta(days=1)),
            ("P30D", timedelta(days=30)),
            ("PT1H30M", timedelta(hours=1, minutes=30)),
        ],
    )
    def test_parses_iso_durations(self, value, expected):
        assert parse_keep_period(value) == expected

    def test_passes_timedelta_through(self):
        assert parse_keep_period(timedelta(minutes=5)) == timedelta(minutes=5)

    def test_strips_whitespace(self):
        assert parse_keep_period("  P1D ") == timedelta(days=1)

    @pytest.mark.parametrize("value", ["", "   ", "not-a-duration", "P1X"])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidArgumentError):
            parse_keep_period(value)

    def test_rejects_non_string(self):
        with pytest.raises(InvalidArgumentError):
            parse_keep_period(30)

    def test_error_is_a_value_error(self):
        """Callers catching ValueError still see configuration errors."""
        with pytest.raises(ValueError):
            parse_keep_period("nonsense")


class TestFormatKeepPeriod:
    """Tests for format_keep_period()."""

    @pytest.mark.parametrize(
        "value,expected",
        [(timedelta(days=1), "P1D"), (timedelta(seconds=10), "PT10S")],
    )
    def test_renders_iso(self, value, expected):
        assert format_keep_period(value) == expected

    @pytest.mark.parametrize("value", [timedelta(0), timedelta(seconds=-5), timedelta(days=2, hours=3)])
    def test_parses_back_to_same_duration(self, value):
        assert parse_keep_period(format_keep_period(value)) == value


class TestIsEligible:
    """Tests for is_eligible()."""

    def test_zero_keep_period_makes_everything_eligible(self):
        assert is_eligible(NOW, NOW, timedelta(0)) is True
        assert is_eligible(NOW + timedelta(days=1), NOW, timedelta(0)) is True

    def test_negative_keep_period_makes_everything_eligible(self):
        assert is_eligible(NOW, NOW, timedelta(seconds=-5)) is True

    def test_older_than_cutoff_is_eligible(self):
        archived = NOW - timedelta(days=2)
        assert is_eligible(archived, NOW, timedelta(days=1)) is True

    def test_newer_than_cutoff_is_kept(self):
        archived = NOW - timedelta(hours=1)
        assert is_eligible(archived, NOW, timedelta(days=1)) is False

    def test_exactly_at_cutoff_is_kept(self):
        archived = NOW - timedelta(days=1)
        assert is_eligible(archived, NOW, timedelta(days=1)) is False

    def test_missing_date_counts_as_epoch(self):
        assert is_eligible(None, NOW, timedelta(days=365)) is True

    def test_naive_datetimes_are_utc(self):
        archived = datetime(2024, 6, 1, 11, 0)
        assert is_eligible(archived, NOW, timedelta(minutes=30)) is True
        assert is_eligible(archived, NOW, timedelta(hours=2)) is False


class TestRetentionPolicy:
    """Tests for RetentionPolicy."""

    def test_from_duration(self):
        policy = RetentionPolicy.from_duration("PT10S")
        assert policy.keep_period == timedelta(seconds=10)
        assert policy.enabled is True

    def test_disabled_policy_has_no_cutoff(self):
        policy = RetentionPolicy.from_duration("P0D")
        assert policy.enabled is False
        assert policy.cutoff(NOW) is None

    def test_cutoff(self):
        policy = RetentionPolicy.from_duration("P1D")
        assert policy.cutoff(NOW) == NOW - timedelta(days=1)

    def test_is_eligible_delegates(self):
        policy = RetentionPolicy.from_duration("P1D")
        assert policy.is_eligible(EPOCH, NOW) is True
        assert policy.is_eligible(NOW, NOW) is False

    def test_is_frozen(self):
        policy = RetentionPolicy.from_duration("P1D")
        with pytest.raises(AttributeError):
            policy.keep_period = timedelta(0)
