"""Record sinks.

A sink receives finished, anonymized records. ``publish`` is
fire-and-forget and may be called from worker threads; buffering and
retries belong to the sink.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from pypassive._redact import redact_for_log
from pypassive.models._base import PassiveBaseModel

_logger = logging.getLogger(__name__)


@runtime_checkable
class Sink(Protocol):
    def publish(self, topic: str, record: PassiveBaseModel) -> None: ...


@runtime_checkable
class FlushableSink(Sink, Protocol):
    """A sink that buffers and must be flushed from the event loop."""

    async def flush(self) -> int: ...


class MemorySink:
    """Keeps published records in memory, in publication order."""

    def __init__(self) -> None:
        self._records: list[tuple[str, PassiveBaseModel]] = []
        self._lock = threading.Lock()

    def publish(self, topic: str, record: PassiveBaseModel) -> None:
        with self._lock:
            self._records.append((topic, record))

    def records(self, topic: str | None = None) -> list[PassiveBaseModel]:
        with self._lock:
            return [r for t, r in self._records if topic is None or t == topic]

    def topics(self) -> list[str]:
        with self._lock:
            return [t for t, _ in self._records]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class LoggingSink:
    """Logs every record at INFO level."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    def publish(self, topic: str, record: PassiveBaseModel) -> None:
        self._logger.info("%s: %s", topic, redact_for_log(record.to_payload()))


__all__ = ["FlushableSink", "LoggingSink", "MemorySink", "Sink"]
