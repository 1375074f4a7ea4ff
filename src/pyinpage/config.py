"""Provider configuration for pyinpage."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyinpage.exceptions import ProviderConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class TransportConfig:
    """Settings for the concrete carriers.

    Parameters
    ----------
    url : str
        WebSocket endpoint of the wallet backend.
    stream_name : str
        Name of the multiplexed sub-stream that carries JSON-RPC traffic.
    ignored_streams : tuple of str
        Sub-streams whose frames are dropped without logging.
    heartbeat : float
        WebSocket ping interval in seconds.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_tls : bool
        Use TLS for the broker connection.
    mqtt_request_topic : str
        Topic that outbound frames are published to.
    mqtt_response_topic : str
        Topic subscribed to for responses and notifications.
    mqtt_client_id : str
        MQTT client identifier.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    """

    url: str = "ws://127.0.0.1:8546"
    stream_name: str = "provider"
    ignored_streams: tuple[str, ...] = ("phishing",)
    heartbeat: float = 30.0
    mqtt_host: str = "127.0.0.1"
    mqtt_port: int = 8883
    mqtt_tls: bool = True
    mqtt_request_topic: str = "wallet/req"
    mqtt_response_topic: str = "wallet/res"
    mqtt_client_id: str = "pyinpage"
    mqtt_keepalive: int = 120


@dataclasses.dataclass(frozen=True)
class ProviderConfig:
    """Provider configuration.

    Parameters
    ----------
    max_event_listeners : int
        Listener count per event above which a warning is logged.
        ``0`` disables the check.
    jsonrpc_version : str
        Protocol version tag added to outbound requests that lack one.
    reject_pending_on_disconnect : bool
        Reject in-flight ``request()`` calls with
        :class:`~pyinpage.exceptions.ProviderDisconnectedError` when the
        transport fails.  Off by default: pending requests are left
        unresolved.
    warn_deprecations : bool
        Log one-time warnings for deprecated events and methods.
    transport : TransportConfig
        Carrier settings.
    """

    max_event_listeners: int = 100
    jsonrpc_version: str = "2.0"
    reject_pending_on_disconnect: bool = False
    warn_deprecations: bool = True
    transport: TransportConfig = dataclasses.field(default_factory=TransportConfig)

    def __post_init__(self) -> None:
        if (
            not isinstance(self.max_event_listeners, int)
            or isinstance(self.max_event_listeners, bool)
            or self.max_event_listeners < 0
            or not isinstance(self.jsonrpc_version, str)
            or not isinstance(self.reject_pending_on_disconnect, bool)
            or not isinstance(self.warn_deprecations, bool)
            or not isinstance(self.transport, TransportConfig)
        ):
            raise ProviderConfigError("Invalid options.")

    @classmethod
    def from_env(cls, **overrides: Any) -> ProviderConfig:
        """Create configuration from ``INPAGE_*`` environment variables.

        Explicit keyword arguments override environment values.  Transport
        fields may be overridden with a nested ``transport`` dict or a
        ready :class:`TransportConfig`.
        """
        env = os.environ

        transport_kwargs: dict[str, Any] = {}
        _ENV_TRANSPORT_STR = {
            "INPAGE_WS_URL": "url",
            "INPAGE_STREAM_NAME": "stream_name",
            "INPAGE_MQTT_HOST": "mqtt_host",
            "INPAGE_MQTT_REQUEST_TOPIC": "mqtt_request_topic",
            "INPAGE_MQTT_RESPONSE_TOPIC": "mqtt_response_topic",
            "INPAGE_MQTT_CLIENT_ID": "mqtt_client_id",
        }
        for env_key, field_name in _ENV_TRANSPORT_STR.items():
            val = env.get(env_key)
            if val is not None:
                transport_kwargs[field_name] = val

        heartbeat_env = env.get("INPAGE_HEARTBEAT")
        if heartbeat_env is not None:
            transport_kwargs["heartbeat"] = float(heartbeat_env)

        port_env = env.get("INPAGE_MQTT_PORT")
        if port_env is not None:
            transport_kwargs["mqtt_port"] = int(port_env)

        keepalive_env = env.get("INPAGE_MQTT_KEEPALIVE")
        if keepalive_env is not None:
            transport_kwargs["mqtt_keepalive"] = int(keepalive_env)

        tls_env = env.get("INPAGE_MQTT_TLS")
        if tls_env is not None:
            transport_kwargs["mqtt_tls"] = _env_bool(tls_env, True)

        transport_overrides = overrides.pop("transport", None)
        if isinstance(transport_overrides, dict):
            transport_kwargs.update(transport_overrides)
        elif isinstance(transport_overrides, TransportConfig):
            transport_kwargs = dataclasses.asdict(transport_overrides)

        config_kwargs: dict[str, Any] = {"transport": TransportConfig(**transport_kwargs)}

        listeners_env = env.get("INPAGE_MAX_EVENT_LISTENERS")
        if listeners_env is not None and "max_event_listeners" not in overrides:
            config_kwargs["max_event_listeners"] = int(listeners_env)

        version_env = env.get("INPAGE_JSONRPC_VERSION")
        if version_env is not None and "jsonrpc_version" not in overrides:
            config_kwargs["jsonrpc_version"] = version_env

        if "reject_pending_on_disconnect" not in overrides:
            config_kwargs["reject_pending_on_disconnect"] = _env_bool(
                env.get("INPAGE_REJECT_PENDING_ON_DISCONNECT"),
                False,
            )

        if "warn_deprecations" not in overrides:
            config_kwargs["warn_deprecations"] = _env_bool(env.get("INPAGE_WARN_DEPRECATIONS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
