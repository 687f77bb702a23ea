"""Private coordinate origin and the relative-coordinate transform.

Latitude and longitude are subtracted with :class:`~decimal.Decimal`
arithmetic on the shortest decimal representation of each float so the
stored reference and every fix stay commensurable without drift.

The three axes are initialized differently. The latitude reference is a
random offset in ``[-4, 4)`` degrees, independent of any fix. Longitude
and altitude take the first observed absolute value, so the first fix
reports zero on those axes.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import random
import secrets
import threading
import time
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

from pypassive._constants import (
    ALTITUDE_REFERENCE_KEY,
    LATITUDE_REFERENCE_KEY,
    LATITUDE_REFERENCE_RANGE,
    LONGITUDE_REFERENCE_KEY,
)
from pypassive.ingestion.normalize import epoch_seconds, sanitize_double, sanitize_float
from pypassive.models.location import LocationFix
from pypassive.models.records import PhoneRelativeLocation, provider_from_name
from pypassive.state.store import KeyValueStore

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ReferencePoint:
    """Per-axis origin; ``None`` until established."""

    latitude: Decimal | None = None
    longitude: Decimal | None = None
    altitude: float | None = None


def _to_decimal(value: float) -> Decimal:
    return Decimal(repr(value))


def _parse_decimal(raw: Any, key: str) -> Decimal | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        _logger.warning("Ignoring malformed %s reference", key)
        return None
    try:
        value = Decimal(raw if isinstance(raw, str) else repr(raw))
    except (InvalidOperation, ValueError, TypeError):
        _logger.warning("Ignoring malformed %s reference", key)
        return None
    if not value.is_finite():
        return None
    return value


def wrap_longitude(relative: float) -> float:
    """Bring a relative longitude in ``[-540, 540]`` back into ``[-180, 180]``."""
    if relative > 180.0:
        return relative - 360.0
    if relative < -180.0:
        return relative + 360.0
    return relative


class RelativeLocationTransform:
    """Turns absolute fixes into :class:`PhoneRelativeLocation` records.

    Parameters
    ----------
    store : KeyValueStore
        Where the reference point is persisted.
    rng : random.Random or None
        Source of the latitude offset; a cryptographic generator by default.
    clock : callable
        Wall clock in epoch seconds, used for ``received_time``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._rng = rng if rng is not None else secrets.SystemRandom()
        self._clock = clock
        self._lock = threading.Lock()
        self._reference = ReferencePoint(
            latitude=_parse_decimal(store.get(LATITUDE_REFERENCE_KEY), "latitude"),
            longitude=_parse_decimal(store.get(LONGITUDE_REFERENCE_KEY), "longitude"),
            altitude=self._load_altitude(),
        )

    def _load_altitude(self) -> float | None:
        raw = self._store.get(ALTITUDE_REFERENCE_KEY)
        if raw is None:
            return None
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            value = float(raw)
            return None if math.isnan(value) else value
        if isinstance(raw, str):
            # Older installations stored the altitude as text.
            try:
                value = float(raw)
            except ValueError:
                _logger.warning("Dropping unparseable altitude reference")
                self._store.remove(ALTITUDE_REFERENCE_KEY)
                return None
            if math.isnan(value):
                self._store.remove(ALTITUDE_REFERENCE_KEY)
                return None
            self._store.set(ALTITUDE_REFERENCE_KEY, value)
            _logger.info("Migrated altitude reference to numeric form")
            return value
        _logger.warning("Dropping altitude reference of type %s", type(raw).__name__)
        self._store.remove(ALTITUDE_REFERENCE_KEY)
        return None

    @property
    def reference(self) -> ReferencePoint:
        """Current (immutable) reference snapshot."""
        return self._reference

    def _establish(self, name: str, factory: Callable[[], Any]) -> ReferencePoint:
        # Compare-and-set: the first caller wins, later callers see its value.
        with self._lock:
            current = getattr(self._reference, name)
            if current is not None:
                return self._reference
            value = factory()
            key = {
                "latitude": LATITUDE_REFERENCE_KEY,
                "longitude": LONGITUDE_REFERENCE_KEY,
                "altitude": ALTITUDE_REFERENCE_KEY,
            }[name]
            self._store.set(key, value if isinstance(value, float) else str(value))
            self._reference = dataclasses.replace(self._reference, **{name: value})
            _logger.info("Established %s reference", name)
            return self._reference

    def _random_latitude(self) -> Decimal:
        offset = -LATITUDE_REFERENCE_RANGE + 2 * LATITUDE_REFERENCE_RANGE * self._rng.random()
        return _to_decimal(offset)

    def relative_latitude(self, absolute: float | None) -> float | None:
        if absolute is None or math.isnan(absolute):
            return None
        if math.isinf(absolute):
            return sanitize_double(absolute)
        reference = self._reference.latitude
        if reference is None:
            reference = self._establish("latitude", self._random_latitude).latitude
        assert reference is not None  # noqa: S101
        return sanitize_double(float(_to_decimal(absolute) - reference))

    def relative_longitude(self, absolute: float | None) -> float | None:
        if absolute is None or math.isnan(absolute):
            return None
        if math.isinf(absolute):
            return sanitize_double(absolute)
        longitude = _to_decimal(absolute)
        reference = self._reference.longitude
        if reference is None:
            reference = self._establish("longitude", lambda: longitude).longitude
        assert reference is not None  # noqa: S101
        return sanitize_double(wrap_longitude(float(longitude - reference)))

    def relative_altitude(self, absolute: float | None) -> float | None:
        if absolute is None or math.isnan(absolute):
            return None
        if math.isinf(absolute):
            return sanitize_float(absolute)
        reference = self._reference.altitude
        if reference is None:
            reference = self._establish("altitude", lambda: float(absolute)).altitude
        assert reference is not None  # noqa: S101
        return sanitize_float(absolute - reference)

    def to_record(self, fix: LocationFix) -> PhoneRelativeLocation:
        """Relative record for *fix*; absent inputs stay absent."""
        return PhoneRelativeLocation(
            event_time=epoch_seconds(fix.time),
            received_time=self._clock(),
            provider=provider_from_name(fix.provider),
            relative_latitude=self.relative_latitude(fix.latitude),
            relative_longitude=self.relative_longitude(fix.longitude),
            relative_altitude=self.relative_altitude(fix.altitude),
            accuracy=sanitize_float(fix.accuracy),
            speed=sanitize_float(fix.speed),
            bearing=sanitize_float(fix.bearing),
        )
