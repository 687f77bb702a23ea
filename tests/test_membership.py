from __future__ import annotations

from pypassive.state.membership import SetDiffTracker, diff, difference_size
from pypassive.state.store import MemoryKeyValueStore


def test_diff_counts_added_and_removed() -> None:
    result = diff(frozenset({"a", "b", "c"}), frozenset({"b", "c", "d"}))
    assert (result.added, result.removed, result.total) == (1, 1, 3)


def test_empty_previous_means_no_baseline() -> None:
    result = diff(frozenset(), frozenset({"a", "b"}))
    assert result.added is None
    assert result.removed is None
    assert result.total == 2


def test_difference_size() -> None:
    assert difference_size(frozenset({"a", "b"}), frozenset({"b"})) == 1
    assert difference_size(frozenset(), frozenset({"b"})) == 0


def test_tracker_persists_snapshot_between_instances() -> None:
    store = MemoryKeyValueStore()
    first = SetDiffTracker(store, "contact.lookups")
    assert not first.has_baseline
    assert first.update({"x", "y"}).added is None

    second = SetDiffTracker(store, "contact.lookups")
    assert second.has_baseline
    result = second.update({"y", "z", "w"})
    assert (result.added, result.removed, result.total) == (2, 1, 3)
    assert store.get("contact.lookups") == ["w", "y", "z"]
