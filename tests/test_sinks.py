from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp
import pytest

from pypassive.exceptions import SinkError
from pypassive.models.records import CallType, PhoneCall, PhoneSmsUnread
from pypassive.sinks import FlushableSink, LoggingSink, MemorySink, Sink
from pypassive.sinks.http import HttpSink
from pypassive.sinks.mqtt import MqttSink, MqttSinkConfig, _parse_broker


def _unread(count: int) -> PhoneSmsUnread:
    return PhoneSmsUnread(event_time=1.0, received_time=2.0, count=count)


def test_records_serialize_camel_case_with_base64_keys() -> None:
    record = PhoneCall(
        event_time=1.5,
        received_time=2.5,
        duration_seconds=3.0,
        anonymized_target_key=b"\xff" * 4,
        call_type=CallType.MISSED,
        target_is_known_contact=False,
        target_is_anonymous_non_numeric=False,
        raw_target_length=10,
    )
    payload = record.to_payload()
    assert payload["callType"] == "missed"
    assert payload["durationSeconds"] == 3.0
    assert isinstance(payload["anonymizedTargetKey"], str)
    assert "anonymized_target_key" not in payload


def test_memory_and_logging_sinks(caplog: pytest.LogCaptureFixture) -> None:
    memory = MemorySink()
    memory.publish("phone_sms_unread", _unread(1))
    memory.publish("phone_sms_unread", _unread(2))
    assert [r.count for r in memory.records("phone_sms_unread")] == [1, 2]  # type: ignore[attr-defined]
    assert memory.topics() == ["phone_sms_unread", "phone_sms_unread"]
    assert isinstance(memory, Sink)
    assert not isinstance(memory, FlushableSink)

    with caplog.at_level(logging.INFO):
        LoggingSink().publish("phone_sms_unread", _unread(3))
    assert "phone_sms_unread" in caplog.text
    assert "'count': 3" in caplog.text


class _Response:
    def __init__(self, status: int) -> None:
        self.status = status

    async def text(self) -> str:
        return "nope"

    async def __aenter__(self) -> _Response:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _Session:
    def __init__(self, statuses: list[int | BaseException]) -> None:
        self.statuses = statuses
        self.bodies: list[dict[str, Any]] = []

    def post(self, url: str, *, data: str, headers: dict[str, str]) -> _Response:
        outcome = self.statuses.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        self.bodies.append(json.loads(data))
        return _Response(outcome)


@pytest.mark.asyncio
async def test_http_sink_posts_batches() -> None:
    session = _Session([200, 200])
    sink = HttpSink("https://collector.example/records", session, batch_size=2)  # type: ignore[arg-type]
    for i in range(3):
        sink.publish("phone_sms_unread", _unread(i))

    assert isinstance(sink, FlushableSink)
    assert await sink.flush() == 3
    assert sink.pending == 0
    assert [len(b["records"]) for b in session.bodies] == [2, 1]
    assert session.bodies[0]["records"][0] == {
        "topic": "phone_sms_unread",
        "value": {"eventTime": 1.0, "receivedTime": 2.0, "count": 0},
    }


@pytest.mark.asyncio
async def test_http_sink_keeps_failed_batch() -> None:
    session = _Session([503, aiohttp.ClientConnectionError("reset"), 204])
    sink = HttpSink("https://collector.example/records", session)  # type: ignore[arg-type]
    sink.publish("phone_sms_unread", _unread(1))

    with pytest.raises(SinkError) as excinfo:
        await sink.flush()
    assert excinfo.value.status_code == 503
    assert sink.pending == 1

    with pytest.raises(SinkError):
        await sink.flush()
    assert sink.pending == 1

    assert await sink.flush() == 1
    assert sink.pending == 0


@pytest.mark.asyncio
async def test_http_sink_keeps_batch_on_timeout() -> None:
    session = _Session([asyncio.TimeoutError(), 200])
    sink = HttpSink("https://collector.example/records", session)  # type: ignore[arg-type]
    sink.publish("phone_sms_unread", _unread(1))

    with pytest.raises(SinkError, match="timed out"):
        await sink.flush()
    assert sink.pending == 1

    assert await sink.flush() == 1
    assert session.bodies[0]["records"][0]["value"]["count"] == 1


@pytest.mark.asyncio
async def test_http_sink_keeps_batch_when_cancelled() -> None:
    session = _Session([asyncio.CancelledError()])
    sink = HttpSink("https://collector.example/records", session)  # type: ignore[arg-type]
    sink.publish("phone_sms_unread", _unread(1))
    sink.publish("phone_sms_unread", _unread(2))

    with pytest.raises(asyncio.CancelledError):
        await sink.flush()
    assert sink.pending == 2


class _Info:
    rc = 0


class _Client:
    def __init__(self) -> None:
        self.published: list[tuple[str, str, int]] = []

    def publish(self, topic: str, payload: str, qos: int = 0) -> _Info:
        self.published.append((topic, payload, qos))
        return _Info()


def test_mqtt_sink_topics_and_publish() -> None:
    sink = MqttSink(MqttSinkConfig(broker_host="localhost", topic_prefix="device/42/"))
    assert sink.topic_for("phone_call") == "device/42/phone_call"

    with pytest.raises(SinkError):
        sink.publish("phone_sms_unread", _unread(1))

    client = _Client()
    sink._client = client  # type: ignore[assignment]
    sink._running = True
    sink.publish("phone_sms_unread", _unread(4))

    topic, payload, qos = client.published[0]
    assert topic == "device/42/phone_sms_unread"
    assert json.loads(payload)["count"] == 4
    assert qos == 1


def test_parse_broker() -> None:
    assert _parse_broker("mqtts://broker.example:8883/path") == ("broker.example", 8883)
    assert _parse_broker("broker.example") == ("broker.example", 1883)
    with pytest.raises(ValueError):
        _parse_broker("  ")
