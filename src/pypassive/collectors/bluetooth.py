"""Bluetooth neighbourhood collector."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from pypassive._processor import Step
from pypassive.collectors._base import PeriodicCollector
from pypassive.exceptions import DiscoveryTimeoutError
from pypassive.models.records import PhoneBluetoothDevices
from pypassive.sinks import Sink

_logger = logging.getLogger(__name__)


@runtime_checkable
class BluetoothAdapter(Protocol):
    """Local bluetooth adapter.

    ``start_discovery`` returns immediately; ``on_found`` is called once
    per discovered device and ``on_finished`` once at the end, from any
    thread.
    """

    def is_enabled(self) -> bool: ...

    def enable(self) -> None: ...

    def disable(self) -> None: ...

    def bonded_device_count(self) -> int: ...

    def start_discovery(self, on_found: Callable[[], None], on_finished: Callable[[], None]) -> None: ...

    def cancel_discovery(self) -> None: ...


class Discovery:
    """One discovery run: a device counter plus a one-shot completion future."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._finished: asyncio.Future[None] = loop.create_future()
        self._count = 0
        self._lock = threading.Lock()

    @property
    def found(self) -> int:
        with self._lock:
            return self._count

    def on_found(self) -> None:
        with self._lock:
            self._count += 1

    def on_finished(self) -> None:
        self._loop.call_soon_threadsafe(self._resolve)

    def _resolve(self) -> None:
        if not self._finished.done():
            self._finished.set_result(None)

    def abort(self) -> None:
        """Complete the run early; must be called on the event loop."""
        self._resolve()

    async def wait(self, timeout: float) -> int:
        """Wait for completion and return the number of devices found.

        Raises
        ------
        DiscoveryTimeoutError
            If discovery did not finish within *timeout* seconds.
        """
        try:
            await asyncio.wait_for(self._finished, timeout)
        except TimeoutError as exc:
            raise DiscoveryTimeoutError(f"Bluetooth discovery did not finish within {timeout:.0f} s") from exc
        return self.found


class BluetoothCollector(PeriodicCollector):
    """Counts paired and nearby bluetooth devices each cycle.

    The adapter is switched on for the discovery if it was off, and
    switched off again afterwards.
    """

    name = "bluetooth"

    def __init__(
        self,
        adapter: BluetoothAdapter | None,
        sink: Sink,
        *,
        interval: float,
        discovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._adapter = adapter
        self._sink = sink
        self._discovery_timeout = discovery_timeout
        self._clock = clock
        self._discovery: Discovery | None = None
        super().__init__(interval)

    def steps(self) -> Sequence[Step]:
        return [self.process_devices]

    def on_cancel(self) -> None:
        discovery = self._discovery
        if discovery is not None:
            discovery.abort()

    async def process_devices(self) -> None:
        adapter = self._adapter
        if adapter is None:
            _logger.error("Bluetooth is not available.")
            return

        was_enabled = adapter.is_enabled()
        if not was_enabled:
            adapter.enable()

        discovery = Discovery(asyncio.get_running_loop())
        self._discovery = discovery
        try:
            adapter.start_discovery(discovery.on_found, discovery.on_finished)
            try:
                nearby = await discovery.wait(self._discovery_timeout)
            except DiscoveryTimeoutError as exc:
                adapter.cancel_discovery()
                _logger.warning("%s; no record published", exc)
                return
            if self.is_done:
                adapter.cancel_discovery()
                return
            paired = adapter.bonded_device_count()
        finally:
            self._discovery = None
            if not was_enabled:
                adapter.disable()

        now = self._clock()
        record = PhoneBluetoothDevices(
            event_time=now,
            received_time=now,
            paired_devices=paired,
            nearby_devices=nearby,
            bluetooth_enabled=was_enabled,
        )
        self._sink.publish(record.TOPIC, record)
        _logger.info("Bluetooth: %d paired, %d nearby, enabled %s", paired, nearby, was_enabled)
