"""Internal MQTT change-feed runtime."""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyturnout._redact import redact_for_log
from pyturnout.config import TurnoutConfig
from pyturnout.exceptions import TurnoutConfigError
from pyturnout.ingestion.normalize import decode_json_object


@dataclass(frozen=True)
class BrokerSettings:
    """Broker connection details required to open a change feed."""

    host: str
    port: int = 8883
    tls: bool = True
    username: str | None = None
    password: str | None = None
    keepalive: int = 60

    @classmethod
    def from_config(cls, config: TurnoutConfig) -> BrokerSettings:
        if not config.mqtt_host:
            raise TurnoutConfigError("mqtt_host is not configured")
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            tls=config.mqtt_tls,
            username=config.mqtt_username,
            password=config.mqtt_password,
            keepalive=config.mqtt_keepalive,
        )


@dataclass(frozen=True)
class FeedMessage:
    """Decoded JSON message received on a change-feed topic."""

    topic: str
    payload: dict[str, Any]


def _build_client_id() -> str:
    return f"pyturnout-{secrets.token_hex(6)}"


class ChangeFeedRuntime:
    """Threaded paho-mqtt runtime for one topic, emitting onto an asyncio loop.

    ``on_message`` receives every decoded JSON object published on the
    topic. ``on_status`` receives ``True`` once the broker has
    acknowledged the subscription and ``False`` whenever the connection
    drops; paho reconnects in the background and the subscription is
    re-issued on every reconnect. Both callbacks always run on *loop*,
    and never after :meth:`stop`.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        topic: str,
        on_message: Callable[[FeedMessage], None],
        on_status: Callable[[bool], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._topic = topic
        self._on_message = on_message
        self._on_status = on_status
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._connected = False

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    @property
    def is_connected(self) -> bool:
        """Whether the subscription is currently acknowledged."""
        return self._connected

    def start(self, settings: BrokerSettings) -> None:
        """Start connecting in the background and subscribe once connected."""
        self.stop()
        self._logger.debug(
            "MQTT feed start requested host=%s port=%s topic=%s",
            settings.host,
            settings.port,
            self._topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=_build_client_id(),
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=30)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s; subscribing topic=%s", reason_code, self._topic)
            c.subscribe(self._topic, qos=1)

        def on_subscribe(
            _c: mqtt.Client,
            _userdata: Any,
            _mid: int,
            reason_codes: list[Any],
            _properties: Any,
        ) -> None:
            if any(code.is_failure for code in reason_codes):
                self._logger.warning("MQTT subscription to %s refused: %s", self._topic, reason_codes)
                return
            self._set_connected(True)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            payload = decode_json_object(msg.payload)
            if payload is None:
                self._logger.debug("MQTT payload on %s is not a JSON object; ignored", msg.topic)
                return
            self._logger.debug("Received PUBLISH topic=%s parsed=%s", msg.topic, redact_for_log(payload))
            message = FeedMessage(topic=msg.topic, payload=payload)
            self._loop.call_soon_threadsafe(self._dispatch_message, message)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)
            self._set_connected(False)

        client.on_connect = on_connect
        client.on_subscribe = on_subscribe
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect_async(settings.host, settings.port, keepalive=settings.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _set_connected(self, connected: bool) -> None:
        if self._connected == connected:
            return
        self._connected = connected
        if self._on_status is not None:
            self._loop.call_soon_threadsafe(self._dispatch_status, connected)

    def _dispatch_message(self, message: FeedMessage) -> None:
        if not self._running:
            return
        self._on_message(message)

    def _dispatch_status(self, connected: bool) -> None:
        if not self._running or self._on_status is None:
            return
        self._on_status(connected)
