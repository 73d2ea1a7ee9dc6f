# tests/unit/test_selector.py
"""Unit tests for eligible item selection."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from trashcan.constants import NodeTypes, StoreRefs
from trashcan.errors import InvalidArgumentError
from trashcan.security import SYSTEM_CONTEXT
from trashcan.services.retention_policy import RetentionPolicy
from trashcan.services.selector import EligibleItemSelector, SelectionMode, TraversalOrder, TypeFilter
from trashcan.services.seeding import seed_trashcan
from trashcan.store.base import ChildAssoc, NodeRef

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def make_selector(store, keep_period="P0D", **kwargs):
    return EligibleItemSelector(
        store,
        RetentionPolicy.from_duration(keep_period),
        clock=lambda: NOW,
        **kwargs,
    )


def add_archive_user(store):
    """Put a protected per-user placeholder under the archive root."""
    root = store.ensure_store(StoreRefs.ARCHIVE)
    return store.create_node(SYSTEM_CONTEXT, root, NodeTypes.ARCHIVE_USER, "admin")


class TestSelect:
    """Tests for EligibleItemSelector.select()."""

    def test_zero_returns_empty_without_listing(self, memory_store):
        seed_trashcan(memory_store, 3)
        selector = make_selector(memory_store)

        assert selector.select(SYSTEM_CONTEXT, 0) == []
        assert memory_store.listing_calls == []

    def test_negative_count_rejected(self, memory_store):
        with pytest.raises(InvalidArgumentError):
            make_selector(memory_store).select(SYSTEM_CONTEXT, -1)

    def test_returns_at_most_max_count(self, any_store):
        seed_trashcan(any_store, 10)
        selected = make_selector(any_store).select(SYSTEM_CONTEXT, 4)
        assert len(selected) == 4

    def test_returns_everything_when_under_cap(self, any_store):
        archived = seed_trashcan(any_store, 3)
        selected = make_selector(any_store).select(SYSTEM_CONTEXT, 100)
        assert selected == archived

    def test_no_duplicates(self, any_store):
        seed_trashcan(any_store, 5, children=2)
        selected = make_selector(any_store).select(SYSTEM_CONTEXT, 100)
        assert len(selected) == len(set(selected)) == 15

    def test_empty_trashcan(self, any_store):
        assert make_selector(any_store).select(SYSTEM_CONTEXT, 10) == []

    def test_respects_keep_period(self, any_store):
        old = seed_trashcan(any_store, 3, archived_at=NOW - timedelta(days=10))
        seed_trashcan(any_store, 3, archived_at=NOW - timedelta(hours=1))

        selected = make_selector(any_store, keep_period="P1D").select(SYSTEM_CONTEXT, 100)

        assert selected == old

    def test_uses_one_now_per_call(self, memory_store):
        seed_trashcan(memory_store, 3, archived_at=NOW - timedelta(days=2))
        clock = MagicMock(return_value=NOW)
        selector = EligibleItemSelector(memory_store, RetentionPolicy.from_duration("P1D"), clock=clock)

        selector.select(SYSTEM_CONTEXT, 10)

        clock.assert_called_once()

    def test_store_not_mutated(self, any_store):
        seed_trashcan(any_store, 4)
        root = any_store.get_root_node(SYSTEM_CONTEXT, StoreRefs.ARCHIVE)

        make_selector(any_store).select(SYSTEM_CONTEXT, 10)

        assert any_store.count_children(SYSTEM_CONTEXT, root) == 4


class TestProtectedTypes:
    """Protected placeholders are never selected."""

    @pytest.mark.parametrize("mode", [SelectionMode.FULL, SelectionMode.BOUNDED])
    def test_archive_user_never_selected(self, any_store, mode):
        placeholder = add_archive_user(any_store)
        archived = seed_trashcan(any_store, 3)

        selected = make_selector(any_store, mode=mode).select(SYSTEM_CONTEXT, 10)

        assert placeholder not in selected
        assert selected == archived

    def test_bounded_counts_placeholders_against_listing(self, memory_store):
        add_archive_user(memory_store)
        seed_trashcan(memory_store, 3)

        selected = make_selector(memory_store, mode=SelectionMode.BOUNDED).select(SYSTEM_CONTEXT, 2)

        assert len(selected) == 1
        assert memory_store.listing_calls == [2]

    def test_full_mode_skips_placeholders_and_fills_cap(self, memory_store):
        add_archive_user(memory_store)
        seed_trashcan(memory_store, 3)

        selected = make_selector(memory_store, mode=SelectionMode.FULL).select(SYSTEM_CONTEXT, 2)

        assert len(selected) == 2
        assert memory_store.listing_calls == [None]

    def test_custom_type_filter(self, memory_store):
        seed_trashcan(memory_store, 2, children=1)
        type_filter = TypeFilter().with_denied(NodeTypes.CONTENT)

        selected = make_selector(memory_store, type_filter=type_filter).select(SYSTEM_CONTEXT, 10)

        assert len(selected) == 2
        for ref in selected:
            assert memory_store.get_type(SYSTEM_CONTEXT, ref) == NodeTypes.FOLDER


class TestTypeFilter:
    """Tests for TypeFilter."""

    def test_default_denies_archive_user(self):
        assert TypeFilter().allows(NodeTypes.ARCHIVE_USER) is False
        assert TypeFilter().allows(NodeTypes.CONTENT) is True

    def test_with_denied_keeps_existing(self):
        type_filter = TypeFilter().with_denied("cm:thumbnail")
        assert type_filter.allows("cm:thumbnail") is False
        assert type_filter.allows(NodeTypes.ARCHIVE_USER) is False


class TestSelectionModes:
    """FULL vs BOUNDED listing and traversal order."""

    def test_bounded_may_miss_eligible_nodes(self, any_store):
        """Recent nodes at the front of the listing hide older ones further down."""
        seed_trashcan(any_store, 3, archived_at=NOW - timedelta(minutes=1))
        old = seed_trashcan(any_store, 3, archived_at=NOW - timedelta(days=5))

        bounded = make_selector(any_store, keep_period="P1D", mode=SelectionMode.BOUNDED)
        full = make_selector(any_store, keep_period="P1D", mode=SelectionMode.FULL)

        assert bounded.select(SYSTEM_CONTEXT, 3) == []
        assert full.select(SYSTEM_CONTEXT, 3) == old

    def test_oldest_and_newest_first_pick_different_victims(self, any_store):
        archived = seed_trashcan(any_store, 6)

        oldest = make_selector(any_store, order=TraversalOrder.OLDEST_FIRST).select(SYSTEM_CONTEXT, 2)
        newest = make_selector(any_store, order=TraversalOrder.NEWEST_FIRST).select(SYSTEM_CONTEXT, 2)

        assert oldest == archived[:2]
        assert newest == [archived[5], archived[4]]

    def test_accepts_string_values(self, memory_store):
        selector = make_selector(memory_store, mode="bounded", order="newest_first")
        assert selector.mode == SelectionMode.BOUNDED
        assert selector.order == TraversalOrder.NEWEST_FIRST


class TestArchivedDateFallback:
    """Archival date is read from the node when the listing lacks it."""

    def test_falls_back_to_property(self):
        root = NodeRef(StoreRefs.ARCHIVE, 1)
        child = NodeRef(StoreRefs.ARCHIVE, 2)
        store = MagicMock()
        store.get_root_node.return_value = root
        store.get_child_assocs.return_value = [ChildAssoc(root, child, NodeTypes.CONTENT, archived_at=None)]
        store.get_property.return_value = NOW - timedelta(minutes=5)

        selected = make_selector(store, keep_period="P1D").select(SYSTEM_CONTEXT, 10)

        assert selected == []
        store.get_property.assert_called_once()

    def test_missing_everywhere_is_eligible(self):
        root = NodeRef(StoreRefs.ARCHIVE, 1)
        child = NodeRef(StoreRefs.ARCHIVE, 2)
        store = MagicMock()
        store.get_root_node.return_value = root
        store.get_child_assocs.return_value = [ChildAssoc(root, child, NodeTypes.CONTENT)]
        store.get_property.return_value = None

        selected = make_selector(store, keep_period="P365D").select(SYSTEM_CONTEXT, 10)

        assert selected == [child]
