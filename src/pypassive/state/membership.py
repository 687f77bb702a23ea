"""Membership snapshots and set-diff tracking.

Only aggregate counts leave this module. The previous snapshot is held
(and persisted) so the next cycle has a baseline; no identifier is ever
part of a published record.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pypassive.state.store import KeyValueStore


@dataclass(frozen=True)
class MembershipDiff:
    """Outcome of one diff cycle.

    ``added``/``removed`` are ``None`` when there was no baseline yet.
    """

    added: int | None
    removed: int | None
    total: int


def difference_size(a: frozenset[str], b: frozenset[str]) -> int:
    """Number of elements of *a* that are not in *b*."""
    return sum(1 for item in a if item not in b)


def diff(previous: frozenset[str], current: frozenset[str]) -> MembershipDiff:
    """Compare two snapshots; an empty *previous* means "no baseline yet"."""
    if not previous:
        return MembershipDiff(added=None, removed=None, total=len(current))
    return MembershipDiff(
        added=difference_size(current, previous),
        removed=difference_size(previous, current),
        total=len(current),
    )


class SetDiffTracker:
    """Holds the previous snapshot and diffs each new one against it."""

    def __init__(self, store: KeyValueStore, key: str) -> None:
        self._store = store
        self._key = key
        self._previous: frozenset[str] = self._load()

    def _load(self) -> frozenset[str]:
        saved = self._store.get(self._key)
        if not isinstance(saved, list):
            return frozenset()
        return frozenset(str(item) for item in saved)

    @property
    def has_baseline(self) -> bool:
        return bool(self._previous)

    def update(self, current: Iterable[str]) -> MembershipDiff:
        """Diff *current* against the held snapshot, then replace it."""
        snapshot = frozenset(current)
        result = diff(self._previous, snapshot)
        self._store.set(self._key, sorted(snapshot))
        self._previous = snapshot
        return result
