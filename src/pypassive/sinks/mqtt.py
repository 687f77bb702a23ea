"""MQTT sink publishing JSON records to ``<prefix>/<topic>``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pypassive.exceptions import SinkError
from pypassive.models._base import PassiveBaseModel


@dataclass(frozen=True)
class MqttSinkConfig:
    """Broker connection details."""

    broker_host: str
    broker_port: int = 1883
    topic_prefix: str = "pypassive"
    client_id: str = ""
    username: str | None = None
    password: str | None = None
    use_tls: bool = False
    qos: int = 1


def _parse_broker(raw_broker: str, default_port: int = 1883) -> tuple[str, int]:
    value = raw_broker.strip()
    if not value:
        raise ValueError("Broker value is empty")

    if "://" in value:
        value = value.split("://", 1)[1]
    if "/" in value:
        value = value.split("/", 1)[0]

    host, _, maybe_port = value.rpartition(":")
    if host and maybe_port.isdigit():
        return host, int(maybe_port)
    return value, default_port


class MqttSink:
    """Threaded paho-mqtt client publishing each record as one message."""

    def __init__(
        self,
        config: MqttSinkConfig,
        *,
        keepalive: int = 120,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @classmethod
    def from_url(cls, broker: str, **kwargs: Any) -> MqttSink:
        """Build a sink from ``host[:port]`` (an optional scheme is ignored)."""
        host, port = _parse_broker(broker)
        return cls(MqttSinkConfig(broker_host=host, broker_port=port, **kwargs))

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    def topic_for(self, topic: str) -> str:
        prefix = self._config.topic_prefix.strip("/")
        return f"{prefix}/{topic}" if prefix else topic

    def start(self) -> None:
        """Connect and start the network loop."""
        self.stop()
        config = self._config
        self._logger.debug(
            "MQTT sink start requested host=%s port=%s prefix=%s",
            config.broker_host,
            config.broker_port,
            config.topic_prefix,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if config.username is not None:
            client.username_pw_set(config.username, config.password)
        if config.use_tls:
            client.tls_set()

        def on_connect(
            _c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        try:
            client.connect(config.broker_host, config.broker_port, keepalive=self._keepalive)
        except OSError as exc:
            raise SinkError(f"Could not connect to {config.broker_host}:{config.broker_port}: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def publish(self, topic: str, record: PassiveBaseModel) -> None:
        client = self._client
        if client is None or not self._running:
            raise SinkError("MQTT sink is not running")
        payload = json.dumps(record.to_payload(), separators=(",", ":"))
        info = client.publish(self.topic_for(topic), payload, qos=self._config.qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise SinkError(f"MQTT publish to {self.topic_for(topic)} failed: rc={info.rc}")

    def stop(self) -> None:
        """Stop and disconnect the client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
