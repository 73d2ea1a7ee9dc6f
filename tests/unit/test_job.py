# tests/unit/test_job.py
"""Unit tests for the scheduler entry point."""

import logging
from unittest.mock import MagicMock, patch

import pytest

from trashcan.config import Settings
from trashcan.constants import StoreRefs
from trashcan.errors import CycleFailedError
from trashcan.logging_config import trace_id_var
from trashcan.security import SYSTEM_CONTEXT
from trashcan.services.cleaner import CycleResult, CycleState, TrashcanCleaner
from trashcan.services.job import build_cleaner, run_cleaner_job
from trashcan.services.seeding import seed_trashcan


class TestRunCleanerJob:
    """Tests for run_cleaner_job()."""

    def test_returns_summary_with_trace_id(self, memory_store):
        seed_trashcan(memory_store, 3)

        summary = run_cleaner_job(TrashcanCleaner(memory_store), trace_id="trace-123")

        assert summary["trace_id"] == "trace-123"
        assert summary["state"] == "done"
        assert summary["deleted"] == 3

    def test_generates_trace_id(self, memory_store):
        summary = run_cleaner_job(TrashcanCleaner(memory_store))
        assert summary["trace_id"]

    def test_clears_context_afterwards(self, memory_store):
        run_cleaner_job(TrashcanCleaner(memory_store), trace_id="trace-abc")
        assert trace_id_var.get() is None

    def test_logs_stage(self, memory_store, caplog):
        with caplog.at_level(logging.INFO, logger="trashcan.stage"):
            run_cleaner_job(TrashcanCleaner(memory_store))

        messages = [r.getMessage() for r in caplog.records if r.name == "trashcan.stage"]
        assert "Stage trashcan_clean started" in messages
        assert "Stage trashcan_clean completed" in messages

    def test_failure_propagates(self, caplog):
        cleaner = MagicMock()
        cleaner.clean.side_effect = CycleFailedError("stopped", CycleResult(state=CycleState.FAILED))

        with caplog.at_level(logging.ERROR, logger="trashcan.stage"):
            with pytest.raises(CycleFailedError):
                run_cleaner_job(cleaner, trace_id="t")

        assert any(getattr(r, "event", None) == "stage_failed" for r in caplog.records)
        assert trace_id_var.get() is None


class TestBuildCleaner:
    """Tests for build_cleaner()."""

    def test_uses_configured_store_and_creates_archive(self):
        settings = Settings(TRASHCAN_STORE_PROVIDER="memory", TRASHCAN_MAX_ITEMS_PER_CYCLE=7)

        cleaner = build_cleaner(settings)

        assert cleaner.max_items_per_cycle == 7
        assert cleaner.count_pending() == 0

    def test_reuses_store_singleton(self):
        with patch("trashcan.store.get_node_store") as mock_get_store:
            store = MagicMock()
            store.get_root_node.return_value = MagicMock()
            mock_get_store.return_value = store

            build_cleaner(Settings(TRASHCAN_STORE_PROVIDER="memory"))

        mock_get_store.assert_called_once_with("memory")
        store.ensure_store.assert_called_once_with(StoreRefs.ARCHIVE)

    def test_store_is_shared(self):
        first = build_cleaner(Settings(TRASHCAN_STORE_PROVIDER="memory"))
        seed_trashcan(first._store, 2)

        second = build_cleaner(Settings(TRASHCAN_STORE_PROVIDER="memory"))

        assert second.count_pending() == 2
        assert second._store.get_root_node(SYSTEM_CONTEXT, StoreRefs.ARCHIVE) is not None
