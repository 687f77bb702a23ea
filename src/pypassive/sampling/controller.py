"""Adaptive location sampling controller.

The controller owns a :class:`SamplingState` and the subscriptions of
every location provider. All state changes (power events, interval and
threshold updates, shutdown) are funneled through one
:class:`~pypassive._actor.SerialExecutor`, so a recomputation triggered
by one event never interleaves with another.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from pypassive._actor import SerialExecutor
from pypassive.exceptions import PassiveConfigError, ProviderUnavailableError
from pypassive.models.location import LocationFix
from pypassive.models.records import LocationProvider, provider_from_name
from pypassive.models.sampling import SamplingFrequency, SamplingParameters, SamplingState
from pypassive.sampling.policy import compute_frequency

_logger = logging.getLogger(__name__)


@runtime_checkable
class LocationSubscriber(Protocol):
    """One location provider (``"gps"`` or ``"network"``).

    Any method may raise :class:`ProviderUnavailableError` when the
    provider cannot be used (no hardware, no permission).
    """

    @property
    def name(self) -> str: ...

    def is_enabled(self) -> bool: ...

    def last_known(self) -> LocationFix | None: ...

    def request_updates(self, interval: int, callback: Callable[[LocationFix], None]) -> None: ...

    def remove_updates(self) -> None: ...


class AdaptiveSamplingController:
    """Battery-driven frequency state machine over location subscriptions.

    Parameters
    ----------
    subscribers : sequence of LocationSubscriber
        Providers to drive. ``gps`` uses the GPS interval pair, every
        other provider the network pair.
    on_fix : callable
        Receives every fix, including the last known fix emitted on
        (re)subscription.
    parameters : SamplingParameters or None
        Initial intervals and thresholds.
    """

    def __init__(
        self,
        subscribers: Sequence[LocationSubscriber],
        on_fix: Callable[[LocationFix], None],
        parameters: SamplingParameters | None = None,
    ) -> None:
        self._subscribers = tuple(subscribers)
        self._on_fix = on_fix
        self._state = SamplingState(parameters=parameters or SamplingParameters())
        self._power: tuple[float, bool] | None = None
        self._unavailable: set[str] = set()
        self._executor = SerialExecutor("sampling")

    @property
    def state(self) -> SamplingState:
        return self._state

    @property
    def frequency(self) -> SamplingFrequency | None:
        return self._state.frequency

    @property
    def unavailable_providers(self) -> frozenset[str]:
        """Providers switched off for good after a failure."""
        return frozenset(self._unavailable)

    # ------------------------------------------------------------------
    # Public API (any thread for post_power_change, event loop otherwise)
    # ------------------------------------------------------------------

    async def start(self, level: float | None = None, is_plugged: bool = False) -> None:
        """Start the executor; apply the current power state if known."""
        self._executor.start()
        if level is not None:
            await self._executor.call(functools.partial(self._apply_power, level, is_plugged))

    def post_power_change(self, level: float, is_plugged: bool) -> None:
        """Queue a power observation. Safe from any thread."""
        self._executor.post(functools.partial(self._apply_power, level, is_plugged))

    async def power_changed(self, level: float, is_plugged: bool) -> None:
        """Apply a power observation and wait until it has been handled."""
        await self._executor.call(functools.partial(self._apply_power, level, is_plugged))

    async def set_intervals(
        self,
        gps_interval: int,
        gps_interval_reduced: int,
        network_interval: int,
        network_interval_reduced: int,
    ) -> None:
        await self._executor.call(
            functools.partial(
                self._reconfigure,
                gps_interval=gps_interval,
                gps_interval_reduced=gps_interval_reduced,
                network_interval=network_interval,
                network_interval_reduced=network_interval_reduced,
            )
        )

    async def set_battery_levels(self, minimum: float, reduced: float) -> None:
        await self._executor.call(
            functools.partial(
                self._reconfigure,
                battery_level_minimum=minimum,
                battery_level_reduced=reduced,
            )
        )

    async def stop(self) -> None:
        """Remove all subscriptions, then stop the executor."""
        if not self._executor.is_running:
            return
        await self._executor.call(self._remove_all)
        await self._executor.stop()

    # ------------------------------------------------------------------
    # Executor-only
    # ------------------------------------------------------------------

    def _apply_power(self, level: float, is_plugged: bool) -> None:
        self._power = (level, is_plugged)
        self._recompute()

    def _reconfigure(self, **changes: Any) -> None:
        current = self._state.parameters
        try:
            parameters = SamplingParameters(**{**current.model_dump(), **changes})
        except ValidationError as exc:
            raise PassiveConfigError(f"Invalid sampling parameters: {exc}") from exc
        if parameters == current:
            return
        # Same label may now mean different intervals: force a resubscribe.
        self._state = SamplingState(frequency=None, parameters=parameters)
        _logger.info("Sampling parameters changed; recomputing")
        self._recompute()

    def _recompute(self) -> None:
        if self._power is None:
            return
        level, is_plugged = self._power
        parameters = self._state.parameters
        target = compute_frequency(
            level,
            is_plugged,
            minimum=parameters.battery_level_minimum,
            reduced=parameters.battery_level_reduced,
        )
        if target == self._state.frequency:
            return
        self._state = self._state.model_copy(update={"frequency": target})
        _logger.info("Location sampling frequency is now %s (battery %.2f, plugged %s)", target.name, level, is_plugged)

        if target == SamplingFrequency.OFF:
            self._remove_all()
        else:
            self._subscribe(*parameters.intervals_for(target))

    def _remove_all(self) -> None:
        for subscriber in self._subscribers:
            if subscriber.name in self._unavailable:
                continue
            try:
                subscriber.remove_updates()
            except ProviderUnavailableError:
                self._mark_unavailable(subscriber.name, "could not remove updates")

    def _subscribe(self, gps_interval: int, network_interval: int) -> None:
        self._remove_all()
        for subscriber in self._subscribers:
            name = subscriber.name
            if provider_from_name(name) == LocationProvider.GPS:
                interval = gps_interval
            else:
                interval = network_interval

            if interval <= 0:
                _logger.info("Location %s gathering disabled in settings", name)
                continue
            if name in self._unavailable:
                continue
            try:
                if not subscriber.is_enabled():
                    _logger.warning("Location %s listener not found", name)
                    continue
                last = subscriber.last_known()
                if last is not None:
                    self._replay(name, last)
                subscriber.request_updates(interval, self._on_fix)
            except ProviderUnavailableError as exc:
                self._mark_unavailable(name, str(exc))
                continue
            _logger.info("Location %s listener activated and set to a period of %d", name, interval)

    def _replay(self, name: str, fix: LocationFix) -> None:
        try:
            self._on_fix(fix)
        except Exception:
            _logger.exception("Could not emit last known %s fix", name)

    def _mark_unavailable(self, name: str, reason: str) -> None:
        self._unavailable.add(name)
        _logger.warning("Location provider %s unavailable (%s); leaving it off", name, reason)
