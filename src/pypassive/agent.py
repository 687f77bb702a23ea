"""High-level async agent wiring configuration, state, sink and collectors."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pypassive._crypto.hashing import HashGenerator, IdentityHasher
from pypassive._processor import LifecycleState, PeriodicProcessor
from pypassive.collectors.bluetooth import BluetoothAdapter, BluetoothCollector
from pypassive.collectors.contacts import ContactListCollector
from pypassive.collectors.location import LocationCollector, PowerSignalSource
from pypassive.collectors.phone_log import PhoneLogCollector
from pypassive.config import CollectorToggles, PassiveConfig
from pypassive.exceptions import LifecycleError, SinkError
from pypassive.ingestion.sources import CountingSource, RecordSource
from pypassive.sampling.controller import LocationSubscriber
from pypassive.sinks import FlushableSink, Sink
from pypassive.state.store import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from pypassive.state.watermark import WatermarkStore

_logger = logging.getLogger(__name__)


@dataclass
class AgentSources:
    """Platform collaborators. A collector whose sources are missing is not created."""

    calls: RecordSource | None = None
    messages: RecordSource | None = None
    unread: CountingSource | None = None
    contacts: RecordSource | None = None
    location_providers: Sequence[LocationSubscriber] = field(default_factory=tuple)
    power: PowerSignalSource | None = None
    bluetooth: BluetoothAdapter | None = None


class PassiveAgent:
    """Runs every configured collector until closed.

    Usage::

        async with PassiveAgent(config, sources, sink) as agent:
            await asyncio.Event().wait()

    Parameters
    ----------
    config : PassiveConfig
        Intervals, page size and location parameters.
    sources : AgentSources
        Platform collaborators.
    sink : Sink
        Receives every record. A sink with a ``flush`` coroutine is
        flushed every ``flush_interval`` seconds and once on close.
    store : KeyValueStore or None
        Overrides the store derived from ``config.store_path``.
    toggles : CollectorToggles or None
        Which collectors to start; all by default.
    """

    def __init__(
        self,
        config: PassiveConfig,
        sources: AgentSources,
        sink: Sink,
        *,
        store: KeyValueStore | None = None,
        toggles: CollectorToggles | None = None,
        flush_interval: float = 60.0,
    ) -> None:
        self._config = config
        self._sink = sink
        if store is None:
            store = JsonFileKeyValueStore(config.store_path) if config.store_path else MemoryKeyValueStore()
        self._store = store
        self._hasher = IdentityHasher(HashGenerator(store))
        self._state = LifecycleState.CREATED
        toggles = toggles or CollectorToggles()

        self.phone_log: PhoneLogCollector | None = None
        self.contacts: ContactListCollector | None = None
        self.location: LocationCollector | None = None
        self.bluetooth: BluetoothCollector | None = None

        if toggles.phone_log and sources.calls and sources.messages and sources.unread:
            self.phone_log = PhoneLogCollector(
                sources.calls,
                sources.messages,
                sources.unread,
                self._hasher,
                sink,
                WatermarkStore(store, history_ms=int(config.log_history * 1000)),
                interval=config.log_interval,
                page_limit=config.page_limit,
            )
        if toggles.contacts and sources.contacts:
            self.contacts = ContactListCollector(
                sources.contacts,
                store,
                sink,
                interval=config.contacts_interval,
                page_limit=config.page_limit,
            )
        if toggles.location and sources.location_providers:
            self.location = LocationCollector(
                sources.location_providers,
                sources.power,
                store,
                sink,
                config=config.location,
            )
        if toggles.bluetooth and sources.bluetooth:
            self.bluetooth = BluetoothCollector(
                sources.bluetooth,
                sink,
                interval=config.bluetooth_interval,
                discovery_timeout=config.bluetooth_discovery_timeout,
            )

        self._flusher: PeriodicProcessor | None = None
        if isinstance(sink, FlushableSink):
            self._flusher = PeriodicProcessor("sink_flush", [self._flush_sink], flush_interval)

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def hasher(self) -> IdentityHasher:
        return self._hasher

    @property
    def collectors(self) -> list[Any]:
        """Created collectors, in start order."""
        return [c for c in (self.phone_log, self.contacts, self.location, self.bluetooth) if c is not None]

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PassiveAgent:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._state != LifecycleState.CREATED:
            raise LifecycleError(f"agent cannot start from state {self._state}")
        self._state = LifecycleState.RUNNING
        try:
            for collector in self.collectors:
                await collector.start()
            if self._flusher is not None:
                await self._flusher.start()
        except BaseException:
            _logger.error("Agent failed to start; closing collectors")
            self._state = LifecycleState.STOPPING
            await self._close_all(self.collectors)
            self._state = LifecycleState.CLOSED
            raise
        _logger.info("Agent started with %d collectors", len(self.collectors))

    async def close(self) -> None:
        """Close collectors in reverse order, then flush the sink once more."""
        if self._state in (LifecycleState.STOPPING, LifecycleState.CLOSED):
            return
        if self._state == LifecycleState.CREATED:
            self._state = LifecycleState.CLOSED
            return
        self._state = LifecycleState.STOPPING
        await self._close_all(self.collectors)
        if self._flusher is not None:
            await self._flusher.close()
            await self._flush_sink()
        self._state = LifecycleState.CLOSED
        _logger.info("Agent closed")

    async def _close_all(self, collectors: list[Any]) -> None:
        for collector in reversed(collectors):
            try:
                await collector.close()
            except Exception:
                _logger.exception("Failed to close %s collector", collector.name)

    async def _flush_sink(self) -> None:
        sink = self._sink
        if not isinstance(sink, FlushableSink):
            return
        try:
            delivered = await sink.flush()
        except SinkError:
            _logger.error("Sink flush failed; records stay buffered", exc_info=True)
            return
        if delivered:
            _logger.debug("Flushed %d records", delivered)
