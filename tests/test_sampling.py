from __future__ import annotations

import math
import random
import threading
from collections.abc import Callable

import pytest

from pypassive.exceptions import PassiveConfigError, ProviderUnavailableError
from pypassive.models.location import LocationFix
from pypassive.models.records import LocationProvider
from pypassive.models.sampling import SamplingFrequency, SamplingParameters
from pypassive.sampling.controller import AdaptiveSamplingController
from pypassive.sampling.policy import compute_frequency
from pypassive.sampling.reference import RelativeLocationTransform, wrap_longitude
from pypassive.state.store import MemoryKeyValueStore

# ----------------------------------------------------------------------
# Policy
# ----------------------------------------------------------------------


def _freq(level: float, plugged: bool = False) -> SamplingFrequency:
    return compute_frequency(level, plugged, minimum=0.15, reduced=0.30)


def test_policy_levels() -> None:
    assert _freq(0.9) == SamplingFrequency.NORMAL
    assert _freq(0.2) == SamplingFrequency.REDUCED
    assert _freq(0.1) == SamplingFrequency.OFF
    assert _freq(0.01, plugged=True) == SamplingFrequency.NORMAL


def test_policy_boundaries_are_inclusive_upwards() -> None:
    assert _freq(0.30) == SamplingFrequency.NORMAL
    assert _freq(0.15) == SamplingFrequency.REDUCED


# ----------------------------------------------------------------------
# Relative coordinates
# ----------------------------------------------------------------------


def _fix(**kwargs: object) -> LocationFix:
    return LocationFix(provider="gps", time=1_700_000_000_000, **kwargs)


def test_longitude_wraparound() -> None:
    assert wrap_longitude(190.0) == -170.0
    assert wrap_longitude(-190.0) == 170.0
    assert wrap_longitude(180.0) == 180.0


def test_first_fix_sets_longitude_and_altitude_reference() -> None:
    store = MemoryKeyValueStore()
    transform = RelativeLocationTransform(store, rng=random.Random(7), clock=lambda: 5.0)

    record = transform.to_record(_fix(latitude=52.1, longitude=4.3, altitude=12.5))

    assert record.relative_longitude == 0.0
    assert record.relative_altitude == 0.0
    assert record.event_time == 1_700_000_000.0
    assert record.received_time == 5.0
    assert store.get("longitude.reference") == "4.3"
    assert store.get("altitude.reference") == 12.5


def test_latitude_reference_is_random_and_bounded() -> None:
    store = MemoryKeyValueStore()
    transform = RelativeLocationTransform(store, rng=random.Random(1))

    relative = transform.relative_latitude(52.0)

    reference = transform.reference.latitude
    assert reference is not None
    assert -4.0 <= float(reference) < 4.0
    assert relative == pytest.approx(52.0 - float(reference))
    assert store.get("latitude.reference") == str(reference)


def test_wrapped_relative_longitude_from_stored_reference() -> None:
    store = MemoryKeyValueStore({"longitude.reference": "-10"})
    transform = RelativeLocationTransform(store)

    assert transform.relative_longitude(180.0) == -170.0
    assert transform.relative_longitude(-200.0) == 170.0


def test_decimal_subtraction_has_no_drift() -> None:
    store = MemoryKeyValueStore({"latitude.reference": "0.1"})
    transform = RelativeLocationTransform(store)
    assert transform.relative_latitude(0.3) == 0.2


def test_absent_and_special_values() -> None:
    transform = RelativeLocationTransform(MemoryKeyValueStore())

    record = transform.to_record(_fix(latitude=math.nan, longitude=None, speed=math.inf, bearing=-math.inf))

    assert record.relative_latitude is None
    assert record.relative_longitude is None
    assert record.relative_altitude is None
    assert record.accuracy is None
    assert record.speed == 3e38
    assert record.bearing == -3e38
    assert transform.reference.longitude is None


def test_legacy_altitude_string_is_migrated() -> None:
    store = MemoryKeyValueStore({"altitude.reference": "100.5"})
    transform = RelativeLocationTransform(store)

    assert transform.reference.altitude == 100.5
    assert store.get("altitude.reference") == 100.5
    assert transform.relative_altitude(110.5) == 10.0


def test_unparseable_altitude_is_rederived() -> None:
    store = MemoryKeyValueStore({"altitude.reference": "high"})
    transform = RelativeLocationTransform(store)

    assert transform.reference.altitude is None
    assert transform.relative_altitude(30.0) == 0.0
    assert store.get("altitude.reference") == 30.0


def test_concurrent_first_fixes_share_one_reference() -> None:
    store = MemoryKeyValueStore()
    transform = RelativeLocationTransform(store)
    barrier = threading.Barrier(8)

    def worker(longitude: float) -> None:
        barrier.wait()
        transform.relative_longitude(longitude)

    threads = [threading.Thread(target=worker, args=(float(i),)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    reference = transform.reference.longitude
    assert reference is not None
    assert store.get("longitude.reference") == str(reference)
    results = [transform.relative_longitude(float(i)) for i in range(8)]
    assert results == [float(i) - float(reference) for i in range(8)]


def test_unknown_provider_maps_to_other() -> None:
    transform = RelativeLocationTransform(MemoryKeyValueStore())
    record = transform.to_record(LocationFix(provider="fused", time=0))
    assert record.provider == LocationProvider.OTHER


# ----------------------------------------------------------------------
# Controller
# ----------------------------------------------------------------------


class _Provider:
    def __init__(self, name: str, *, enabled: bool = True, unavailable: bool = False) -> None:
        self._name = name
        self.enabled = enabled
        self.unavailable = unavailable
        self.requests: list[int] = []
        self.removals = 0
        self.last: LocationFix | None = LocationFix(provider=name, time=1_000, latitude=1.0, longitude=2.0)

    @property
    def name(self) -> str:
        return self._name

    def is_enabled(self) -> bool:
        if self.unavailable:
            raise ProviderUnavailableError("no permission", provider=self._name)
        return self.enabled

    def last_known(self) -> LocationFix | None:
        return self.last

    def request_updates(self, interval: int, callback: Callable[[LocationFix], None]) -> None:
        self.requests.append(interval)

    def remove_updates(self) -> None:
        self.removals += 1


_PARAMS = SamplingParameters(
    gps_interval=900,
    gps_interval_reduced=3600,
    network_interval=300,
    network_interval_reduced=1200,
)


@pytest.mark.asyncio
async def test_controller_subscribes_with_normal_intervals_and_emits_last_known() -> None:
    gps, network = _Provider("gps"), _Provider("network")
    fixes: list[LocationFix] = []
    controller = AdaptiveSamplingController([gps, network], fixes.append, _PARAMS)

    await controller.start(0.8, False)

    assert controller.frequency == SamplingFrequency.NORMAL
    assert gps.requests == [900]
    assert network.requests == [300]
    assert [f.provider for f in fixes] == ["gps", "network"]
    await controller.stop()


@pytest.mark.asyncio
async def test_failing_last_known_fix_still_subscribes_every_provider() -> None:
    gps, network = _Provider("gps"), _Provider("network")

    def _broken(fix: LocationFix) -> None:
        raise RuntimeError("sink gone")

    controller = AdaptiveSamplingController([gps, network], _broken, _PARAMS)
    await controller.start(0.8, False)

    assert controller.frequency == SamplingFrequency.NORMAL
    assert gps.requests == [900]
    assert network.requests == [300]
    await controller.stop()


@pytest.mark.asyncio
async def test_controller_is_idempotent_for_same_state() -> None:
    gps = _Provider("gps")
    controller = AdaptiveSamplingController([gps], lambda fix: None, _PARAMS)
    await controller.start(0.8, False)

    await controller.power_changed(0.30, False)
    await controller.power_changed(0.95, False)
    await controller.power_changed(0.30, False)

    assert gps.requests == [900]
    await controller.stop()


@pytest.mark.asyncio
async def test_controller_reduces_then_turns_off() -> None:
    gps = _Provider("gps")
    controller = AdaptiveSamplingController([gps], lambda fix: None, _PARAMS)
    await controller.start(0.8, False)

    await controller.power_changed(0.2, False)
    assert controller.frequency == SamplingFrequency.REDUCED
    assert gps.requests == [900, 3600]

    removals = gps.removals
    await controller.power_changed(0.1, False)
    assert controller.frequency == SamplingFrequency.OFF
    assert gps.requests == [900, 3600]
    assert gps.removals == removals + 1

    await controller.power_changed(0.1, True)
    assert controller.frequency == SamplingFrequency.NORMAL
    assert gps.requests == [900, 3600, 900]
    await controller.stop()


@pytest.mark.asyncio
async def test_interval_change_forces_resubscribe() -> None:
    gps = _Provider("gps")
    controller = AdaptiveSamplingController([gps], lambda fix: None, _PARAMS)
    await controller.start(0.8, False)

    await controller.set_intervals(600, 3600, 300, 1200)
    assert controller.frequency == SamplingFrequency.NORMAL
    assert gps.requests == [900, 600]

    # Unchanged parameters are a no-op.
    await controller.set_intervals(600, 3600, 300, 1200)
    assert gps.requests == [900, 600]
    await controller.stop()


@pytest.mark.asyncio
async def test_battery_level_change_recomputes_state() -> None:
    gps = _Provider("gps")
    controller = AdaptiveSamplingController([gps], lambda fix: None, _PARAMS)
    await controller.start(0.25, False)
    assert controller.frequency == SamplingFrequency.REDUCED

    await controller.set_battery_levels(0.1, 0.2)
    assert controller.frequency == SamplingFrequency.NORMAL
    assert gps.requests == [3600, 900]

    with pytest.raises(PassiveConfigError):
        await controller.set_battery_levels(0.5, 0.2)
    await controller.stop()


@pytest.mark.asyncio
async def test_disabled_and_unavailable_providers() -> None:
    gps = _Provider("gps", unavailable=True)
    network = _Provider("network")
    controller = AdaptiveSamplingController([gps, network], lambda fix: None, _PARAMS)
    await controller.start(0.8, False)

    assert controller.unavailable_providers == frozenset({"gps"})
    assert network.requests == [300]

    # Zero interval disables the network provider; gps stays off for good.
    gps.unavailable = False
    await controller.set_intervals(900, 3600, 0, 0)
    assert gps.requests == []
    assert network.requests == [300]
    await controller.stop()


@pytest.mark.asyncio
async def test_posted_power_changes_are_applied_in_order() -> None:
    gps = _Provider("gps")
    controller = AdaptiveSamplingController([gps], lambda fix: None, _PARAMS)
    await controller.start()
    assert controller.frequency is None

    controller.post_power_change(0.2, False)
    controller.post_power_change(0.9, False)
    await controller.stop()

    assert gps.requests == [3600, 900]
    assert controller.frequency == SamplingFrequency.NORMAL
