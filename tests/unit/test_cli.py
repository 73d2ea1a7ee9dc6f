# tests/unit/test_cli.py
"""Tests for the trashcan CLI."""

import pytest

from trashcan.cli.trashcan import main
from trashcan.services.seeding import seed_trashcan
from trashcan.store import get_node_store


class TestSeedAndStatus:
    """seed / status commands."""

    def test_seed_then_status(self, capsys):
        main(["seed", "--count", "3", "--children", "1"])
        assert "Archived 6 nodes" in capsys.readouterr().out

        main(["status"])
        out = capsys.readouterr().out
        assert "Nodes in trashcan: 6" in out
        assert "max_items_per_cycle: 1000" in out

    def test_seed_requires_count(self):
        with pytest.raises(SystemExit):
            main(["seed"])


class TestClean:
    """clean command."""

    def test_requires_confirm(self, capsys):
        main(["seed", "--count", "2"])

        with pytest.raises(SystemExit) as exc_info:
            main(["clean"])

        assert exc_info.value.code == 1
        assert "--confirm" in capsys.readouterr().out
        assert get_node_store().delete_calls == []

    def test_dry_run(self, capsys):
        main(["seed", "--count", "3"])

        main(["clean", "--dry-run", "--max-items", "2", "-v"])

        out = capsys.readouterr().out
        assert "DRY RUN" in out
        assert "Selected: 2" in out
        assert "archive://SpacesStore/" in out
        assert get_node_store().delete_calls == []

    def test_confirmed_clean(self, capsys):
        main(["seed", "--count", "4"])

        main(["clean", "--confirm", "--max-items", "3"])

        out = capsys.readouterr().out
        assert "Deleted: 3" in out
        assert "Remaining: 1" in out

    def test_keep_period_override(self, capsys):
        main(["seed", "--count", "2"])

        main(["clean", "--confirm", "--keep-period", "P30D"])

        out = capsys.readouterr().out
        assert "Deleted: 0" in out
        assert "Remaining: 2" in out

    def test_invalid_keep_period(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["clean", "--confirm", "--keep-period", "thirty"])

        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().out

    def test_bounded_mode(self):
        main(["seed", "--count", "1"])

        main(["clean", "--dry-run", "--mode", "bounded"])

        assert get_node_store().listing_calls[-1] == 1000

    def test_failed_cycle_exits_nonzero(self, capsys):
        archived = seed_trashcan(get_node_store(), 2)
        get_node_store().inject_failure(archived[0])

        with pytest.raises(SystemExit) as exc_info:
            main(["clean", "--confirm"])

        assert exc_info.value.code == 1
        assert "State: failed" in capsys.readouterr().out
