"""Persisted per-source watermarks.

A watermark is the ordering value of the last row a source's handler
has processed. It is written after every page and never moves
backwards.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pypassive.ingestion.normalize import safe_int
from pypassive.state.store import KeyValueStore

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class Watermark(BaseModel):
    """High-water mark on a source's monotonic ordering field."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source_id: str = Field(..., description="Persisted key of the source")
    last_seen_value: int

    @field_validator("source_id")
    @classmethod
    def _source_non_empty(cls, value: str) -> str:
        source_id = value.strip()
        if not source_id:
            raise ValueError("source_id must be non-empty")
        return source_id


def should_advance(current: int | None, incoming: int | None) -> bool:
    """Whether *incoming* may replace *current*."""
    if incoming is None:
        return False
    if current is None:
        return True
    return incoming > current


class WatermarkStore:
    """Read/advance watermarks kept in a :class:`KeyValueStore`.

    Parameters
    ----------
    store
        Backing key-value store.
    clock_ms
        Wall clock in epoch milliseconds; used for the first-ever
        watermark of a source.
    history_ms
        How far before *now* a source without a watermark starts.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock_ms: Callable[[], int] = _now_ms,
        history_ms: int = 0,
    ) -> None:
        self._store = store
        self._clock_ms = clock_ms
        self._history_ms = history_ms

    def peek(self, source_id: str) -> Watermark | None:
        """Return the persisted watermark, or ``None`` if none exists."""
        value = safe_int(self._store.get(source_id))
        if value is None:
            return None
        return Watermark(source_id=source_id, last_seen_value=value)

    def load(self, source_id: str) -> Watermark:
        """Return the persisted watermark, creating the initial one if absent."""
        existing = self.peek(source_id)
        if existing is not None:
            return existing
        initial = self._clock_ms() - self._history_ms
        _logger.info("No watermark for %s yet; starting at %d", source_id, initial)
        self._store.set(source_id, initial)
        return Watermark(source_id=source_id, last_seen_value=initial)

    def advance(self, source_id: str, value: int | None) -> Watermark | None:
        """Persist *value* if it is newer than the stored watermark.

        Returns the watermark in effect afterwards.
        """
        current = self.peek(source_id)
        current_value = current.last_seen_value if current is not None else None
        if not should_advance(current_value, value):
            return current
        assert value is not None  # noqa: S101
        self._store.set(source_id, value)
        return Watermark(source_id=source_id, last_seen_value=value)
