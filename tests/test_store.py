from __future__ import annotations

import json
from pathlib import Path

import pytest

from pypassive.exceptions import StoreError
from pypassive.state.store import JsonFileKeyValueStore, MemoryKeyValueStore
from pypassive.state.watermark import WatermarkStore, should_advance


def test_memory_store_copies_values() -> None:
    store = MemoryKeyValueStore()
    value = ["a"]
    store.set("k", value)
    value.append("b")

    assert store.get("k") == ["a"]
    assert "k" in store
    store.remove("k")
    assert store.get("k", "fallback") == "fallback"


def test_json_store_round_trips_through_disk(tmp_path: Path) -> None:
    path = tmp_path / "state" / "passive.json"
    store = JsonFileKeyValueStore(path)
    store.set("last.call.time", 1234)
    store.set("latitude.reference", "1.25")

    reopened = JsonFileKeyValueStore(path)
    assert reopened.get("last.call.time") == 1234
    assert reopened.get("latitude.reference") == "1.25"
    assert json.loads(path.read_text(encoding="utf-8"))["last.call.time"] == 1234
    assert list(tmp_path.joinpath("state").iterdir()) == [path]


def test_json_store_rejects_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "passive.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonFileKeyValueStore(path)


def test_json_store_rolls_back_unserializable_value(tmp_path: Path) -> None:
    store = JsonFileKeyValueStore(tmp_path / "passive.json")
    store.set("k", 1)
    with pytest.raises(StoreError):
        store.set("k", object())
    assert store.get("k") == 1


def test_should_advance() -> None:
    assert should_advance(None, 5)
    assert should_advance(4, 5)
    assert not should_advance(5, 5)
    assert not should_advance(6, 5)
    assert not should_advance(6, None)


def test_watermark_starts_at_now_minus_history() -> None:
    store = MemoryKeyValueStore()
    watermarks = WatermarkStore(store, clock_ms=lambda: 10_000, history_ms=4_000)

    assert watermarks.peek("last.sms.time") is None
    assert watermarks.load("last.sms.time").last_seen_value == 6_000
    assert store.get("last.sms.time") == 6_000


def test_watermark_never_regresses() -> None:
    store = MemoryKeyValueStore({"last.call.time": 500})
    watermarks = WatermarkStore(store)

    assert watermarks.advance("last.call.time", 400).last_seen_value == 500
    assert watermarks.advance("last.call.time", 900).last_seen_value == 900
    assert store.get("last.call.time") == 900
