"""Agent configuration for pypassive."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pypassive._constants import PAGE_LIMIT
from pypassive.exceptions import PassiveConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, kind: type) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return kind(raw)
    except ValueError as exc:
        raise PassiveConfigError(f"{key} must be a {kind.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class LocationConfig:
    """Location sampling parameters.

    Intervals are in seconds; an interval ``<= 0`` disables that provider.
    Battery levels are fractions in ``[0, 1]``.

    Parameters
    ----------
    gps_interval : int
        GPS update interval at normal power.
    gps_interval_reduced : int
        GPS update interval at reduced power.
    network_interval : int
        Network location update interval at normal power.
    network_interval_reduced : int
        Network location update interval at reduced power.
    battery_level_minimum : float
        Below this level (and not charging) location sampling is off.
    battery_level_reduced : float
        Below this level (and not charging) the reduced intervals are used.
    """

    gps_interval: int = 15 * 60
    gps_interval_reduced: int = 4 * 15 * 60
    network_interval: int = 5 * 60
    network_interval_reduced: int = 4 * 5 * 60
    battery_level_minimum: float = 0.15
    battery_level_reduced: float = 0.30

    def __post_init__(self) -> None:
        if not 0.0 <= self.battery_level_minimum <= self.battery_level_reduced <= 1.0:
            raise PassiveConfigError(
                "battery levels must satisfy 0 <= minimum <= reduced <= 1 "
                f"(got minimum={self.battery_level_minimum}, reduced={self.battery_level_reduced})"
            )


@dataclasses.dataclass(frozen=True)
class PassiveConfig:
    """Agent configuration.

    Parameters
    ----------
    store_path : str or None
        Path of the JSON key-value file holding watermarks, salt and
        location references. ``None`` keeps state in memory only.
    log_interval : float
        Seconds between call log, message log and unread-count cycles.
    log_history : float
        How far back, in seconds, the first-ever call/message watermark
        starts. ``0`` only harvests records created after first start.
    page_limit : int
        Maximum rows fetched per source query.
    contacts_interval : float
        Seconds between contact-list diff cycles.
    bluetooth_interval : float
        Seconds between bluetooth discovery cycles.
    bluetooth_discovery_timeout : float
        Seconds to wait for a discovery to finish.
    location : LocationConfig
        Location sampling parameters.
    """

    store_path: str | None = None
    log_interval: float = 24 * 3600
    log_history: float = 0.0
    page_limit: int = PAGE_LIMIT
    contacts_interval: float = 24 * 3600
    bluetooth_interval: float = 3600
    bluetooth_discovery_timeout: float = 30.0
    location: LocationConfig = dataclasses.field(default_factory=LocationConfig)

    def __post_init__(self) -> None:
        if self.page_limit <= 0:
            raise PassiveConfigError(f"page_limit must be positive (got {self.page_limit})")
        for name in ("log_interval", "contacts_interval", "bluetooth_interval"):
            if getattr(self, name) <= 0:
                raise PassiveConfigError(f"{name} must be positive")
        if self.log_history < 0:
            raise PassiveConfigError("log_history must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> PassiveConfig:
        """Create configuration from environment variables.

        Reads optional ``PASSIVE_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        PassiveConfig
            Populated configuration.
        """
        env = os.environ

        location_kwargs: dict[str, Any] = {}
        _ENV_LOCATION_MAP = {
            "PASSIVE_GPS_INTERVAL": ("gps_interval", int),
            "PASSIVE_GPS_INTERVAL_REDUCED": ("gps_interval_reduced", int),
            "PASSIVE_NETWORK_INTERVAL": ("network_interval", int),
            "PASSIVE_NETWORK_INTERVAL_REDUCED": ("network_interval_reduced", int),
            "PASSIVE_BATTERY_LEVEL_MINIMUM": ("battery_level_minimum", float),
            "PASSIVE_BATTERY_LEVEL_REDUCED": ("battery_level_reduced", float),
        }
        for env_key, (field_name, kind) in _ENV_LOCATION_MAP.items():
            val = _env_number(env, env_key, kind)
            if val is not None:
                location_kwargs[field_name] = val

        # Allow overriding location fields via a nested dict
        location_overrides = overrides.pop("location", None)
        if isinstance(location_overrides, dict):
            location_kwargs.update(location_overrides)
        elif isinstance(location_overrides, LocationConfig):
            location_kwargs = dataclasses.asdict(location_overrides)

        location = LocationConfig(**location_kwargs)

        config_kwargs: dict[str, Any] = {"location": location}
        store_path = env.get("PASSIVE_STORE_PATH")
        if store_path:
            config_kwargs["store_path"] = store_path

        _ENV_CONFIG_MAP = {
            "PASSIVE_LOG_INTERVAL": ("log_interval", float),
            "PASSIVE_LOG_HISTORY": ("log_history", float),
            "PASSIVE_PAGE_LIMIT": ("page_limit", int),
            "PASSIVE_CONTACTS_INTERVAL": ("contacts_interval", float),
            "PASSIVE_BLUETOOTH_INTERVAL": ("bluetooth_interval", float),
            "PASSIVE_BLUETOOTH_DISCOVERY_TIMEOUT": ("bluetooth_discovery_timeout", float),
        }
        for env_key, (field_name, kind) in _ENV_CONFIG_MAP.items():
            if field_name in overrides:
                continue
            val = _env_number(env, env_key, kind)
            if val is not None:
                config_kwargs[field_name] = val

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class CollectorToggles:
    """Which collectors an agent starts."""

    phone_log: bool = True
    contacts: bool = True
    location: bool = True
    bluetooth: bool = True

    @classmethod
    def from_env(cls) -> CollectorToggles:
        env = os.environ
        return cls(
            phone_log=_env_bool(env.get("PASSIVE_PHONE_LOG_ENABLED"), True),
            contacts=_env_bool(env.get("PASSIVE_CONTACTS_ENABLED"), True),
            location=_env_bool(env.get("PASSIVE_LOCATION_ENABLED"), True),
            bluetooth=_env_bool(env.get("PASSIVE_BLUETOOTH_ENABLED"), True),
        )
