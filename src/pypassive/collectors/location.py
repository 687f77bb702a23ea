"""Relative location collector."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from pypassive._processor import LifecycleState
from pypassive.config import LocationConfig
from pypassive.exceptions import LifecycleError, PassiveError, ProviderUnavailableError
from pypassive.models.location import LocationFix
from pypassive.models.sampling import SamplingFrequency, SamplingParameters
from pypassive.sampling.controller import AdaptiveSamplingController, LocationSubscriber
from pypassive.sampling.reference import RelativeLocationTransform
from pypassive.sinks import Sink
from pypassive.state.store import KeyValueStore

_logger = logging.getLogger(__name__)

PowerListener = Callable[[float, bool], None]


@runtime_checkable
class PowerSignalSource(Protocol):
    """Battery level (``0..1``) and charging state.

    ``current`` raises :class:`ProviderUnavailableError` when the power
    state cannot be read. Listeners may be called from any thread.
    """

    def current(self) -> tuple[float, bool]: ...

    def add_listener(self, listener: PowerListener) -> None: ...

    def remove_listener(self, listener: PowerListener) -> None: ...


def parameters_from_config(config: LocationConfig) -> SamplingParameters:
    return SamplingParameters(
        gps_interval=config.gps_interval,
        gps_interval_reduced=config.gps_interval_reduced,
        network_interval=config.network_interval,
        network_interval_reduced=config.network_interval_reduced,
        battery_level_minimum=config.battery_level_minimum,
        battery_level_reduced=config.battery_level_reduced,
    )


class LocationCollector:
    """Publishes relative location fixes at a battery-dependent rate.

    Without a usable power signal the controller never leaves its initial
    state, so no provider is subscribed.

    Parameters
    ----------
    providers : sequence of LocationSubscriber
        Location providers, typically ``gps`` and ``network``.
    power : PowerSignalSource or None
        Battery state source.
    store : KeyValueStore
        Holds the reference point.
    sink : Sink
        Receives :class:`~pypassive.models.PhoneRelativeLocation` records.
    config : LocationConfig or None
        Initial intervals and thresholds.
    """

    name = "location"

    def __init__(
        self,
        providers: Sequence[LocationSubscriber],
        power: PowerSignalSource | None,
        store: KeyValueStore,
        sink: Sink,
        *,
        config: LocationConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._power = power
        self._sink = sink
        self._transform = RelativeLocationTransform(store, rng=rng, clock=clock)
        self._controller = AdaptiveSamplingController(
            providers,
            self.on_location_changed,
            parameters_from_config(config or LocationConfig()),
        )
        self._listening = False
        self._state = LifecycleState.CREATED

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def frequency(self) -> SamplingFrequency | None:
        return self._controller.frequency

    @property
    def controller(self) -> AdaptiveSamplingController:
        return self._controller

    @property
    def transform(self) -> RelativeLocationTransform:
        return self._transform

    async def start(self) -> None:
        if self._state != LifecycleState.CREATED:
            raise LifecycleError(f"location collector cannot start from state {self._state}")
        level: float | None = None
        is_plugged = False
        if self._power is None:
            _logger.warning("No power signal available; location sampling stays off")
        else:
            try:
                level, is_plugged = self._power.current()
            except ProviderUnavailableError as exc:
                _logger.warning("Power signal unavailable (%s); location sampling stays off", exc)
        await self._controller.start(level, is_plugged)
        if self._power is not None and level is not None:
            self._power.add_listener(self._on_power_changed)
            self._listening = True
        self._state = LifecycleState.RUNNING

    def _on_power_changed(self, level: float, is_plugged: bool) -> None:
        self._controller.post_power_change(level, is_plugged)

    def on_location_changed(self, fix: LocationFix | None) -> None:
        """Provider callback; may run on any thread."""
        if fix is None:
            return
        try:
            record = self._transform.to_record(fix)
            self._sink.publish(record.TOPIC, record)
        except (PassiveError, ValidationError):
            _logger.error("Could not publish %s location fix", fix.provider, exc_info=True)
            return
        _logger.debug("Location: %s %s", record.provider, record.event_time)

    async def set_intervals(
        self,
        gps_interval: int,
        gps_interval_reduced: int,
        network_interval: int,
        network_interval_reduced: int,
    ) -> None:
        await self._controller.set_intervals(gps_interval, gps_interval_reduced, network_interval, network_interval_reduced)

    async def set_battery_levels(self, minimum: float, reduced: float) -> None:
        await self._controller.set_battery_levels(minimum, reduced)

    async def close(self) -> None:
        if self._state in (LifecycleState.CLOSED, LifecycleState.STOPPING):
            return
        if self._state == LifecycleState.CREATED:
            self._state = LifecycleState.CLOSED
            return
        self._state = LifecycleState.STOPPING
        if self._power is not None and self._listening:
            self._power.remove_listener(self._on_power_changed)
            self._listening = False
        await self._controller.stop()
        self._state = LifecycleState.CLOSED
