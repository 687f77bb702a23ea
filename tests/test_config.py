from __future__ import annotations

import pytest

from pypassive.config import CollectorToggles, LocationConfig, PassiveConfig
from pypassive.exceptions import PassiveConfigError


def test_defaults() -> None:
    config = PassiveConfig()
    assert config.page_limit == 1000
    assert config.log_interval == 24 * 3600
    assert config.log_history == 0.0
    assert config.location.gps_interval == 900
    assert config.location.network_interval_reduced == 1200
    assert config.location.battery_level_minimum == 0.15


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PASSIVE_STORE_PATH", "/tmp/passive.json")
    monkeypatch.setenv("PASSIVE_LOG_INTERVAL", "600")
    monkeypatch.setenv("PASSIVE_PAGE_LIMIT", "250")
    monkeypatch.setenv("PASSIVE_GPS_INTERVAL", "0")
    monkeypatch.setenv("PASSIVE_BATTERY_LEVEL_REDUCED", "0.5")

    config = PassiveConfig.from_env()

    assert config.store_path == "/tmp/passive.json"
    assert config.log_interval == 600.0
    assert config.page_limit == 250
    assert config.location.gps_interval == 0
    assert config.location.battery_level_reduced == 0.5


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PASSIVE_PAGE_LIMIT", "250")
    monkeypatch.setenv("PASSIVE_NETWORK_INTERVAL", "60")

    config = PassiveConfig.from_env(page_limit=10, location={"network_interval": 120})

    assert config.page_limit == 10
    assert config.location.network_interval == 120


def test_invalid_values_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PASSIVE_PAGE_LIMIT", "many")
    with pytest.raises(PassiveConfigError):
        PassiveConfig.from_env()

    with pytest.raises(PassiveConfigError):
        LocationConfig(battery_level_minimum=0.4, battery_level_reduced=0.3)
    with pytest.raises(PassiveConfigError):
        PassiveConfig(page_limit=0)


def test_collector_toggles_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PASSIVE_BLUETOOTH_ENABLED", "off")
    monkeypatch.setenv("PASSIVE_CONTACTS_ENABLED", "maybe")

    toggles = CollectorToggles.from_env()

    assert not toggles.bluetooth
    assert toggles.contacts
    assert toggles.phone_log
