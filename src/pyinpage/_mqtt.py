"""MQTT carrier built on a threaded paho-mqtt runtime."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyinpage._constants import CONNECTION_LABEL
from pyinpage._transport import RpcTransport
from pyinpage.config import TransportConfig
from pyinpage.exceptions import TransportError


class MqttTransport(RpcTransport):
    """Multiplexed JSON-RPC over an MQTT request/response topic pair.

    paho runs its network loop in a background thread; every inbound message
    and disconnect is handed to the asyncio loop with ``call_soon_threadsafe``
    so that frame handling stays on the loop thread.
    """

    def __init__(
        self,
        config: TransportConfig,
        *,
        username: str | None = None,
        password: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(config)
        self._username = username
        self._password = password
        self._logger = logger or logging.getLogger(__name__)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    async def start(self) -> None:
        """Connect, subscribe to the response topic and start the network loop."""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        try:
            await self._loop.run_in_executor(None, self._start_client)
        except (OSError, ValueError) as exc:
            raise TransportError(
                f"MQTT connect to {self._config.mqtt_host}:{self._config.mqtt_port} failed: {exc}",
                label=CONNECTION_LABEL,
            ) from exc

    def _start_client(self) -> None:
        config = self._config
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s client_id=%s",
            config.mqtt_host,
            config.mqtt_port,
            config.mqtt_response_topic,
            config.mqtt_client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=config.mqtt_client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._username is not None:
            client.username_pw_set(self._username, self._password)
        if config.mqtt_tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                loop = self._loop
                if not self._running or loop is None:
                    return
                self._running = False
                error = TransportError(f"MQTT connection refused: {reason_code}", label=CONNECTION_LABEL)
                loop.call_soon_threadsafe(self._report_failure, error)
                return
            self._logger.debug("MQTT connected; subscribing topic=%s", config.mqtt_response_topic)
            c.subscribe(config.mqtt_response_topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            loop = self._loop
            if loop is None:
                return
            text = msg.payload.decode("utf-8", errors="replace")
            loop.call_soon_threadsafe(self._handle_frame, text)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            loop = self._loop
            if not self._running or loop is None:
                return
            self._logger.debug("MQTT disconnected: %s", reason_code)
            self._running = False
            error = TransportError(f"MQTT disconnected: {reason_code}", label=CONNECTION_LABEL)
            loop.call_soon_threadsafe(self._report_failure, error)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)

        # Set before the network thread starts so a refused CONNACK is reported.
        self._client = client
        self._running = True
        client.loop_start()
        self._logger.debug("MQTT network loop started")

    async def close(self) -> None:
        """Stop and disconnect the MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        if client is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            await loop.run_in_executor(None, client.loop_stop)
            self._logger.debug("MQTT network loop stopped")

    async def _write_frame(self, text: str) -> None:
        client = self._client
        if client is None or not self._running:
            raise TransportError("MQTT client is not connected", label=CONNECTION_LABEL)
        info = client.publish(self._config.mqtt_request_topic, text, qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(f"MQTT publish failed rc={info.rc}", label=CONNECTION_LABEL)
