"""pyinpage - Async wallet provider kept in sync with a wallet backend."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyinpage")
except PackageNotFoundError:
    __version__ = "0+local"
from pyinpage._mqtt import MqttTransport
from pyinpage._transport import RpcTransport, Transport
from pyinpage._ws import WebSocketTransport
from pyinpage.config import ProviderConfig, TransportConfig
from pyinpage.events import EventEmitter, ProviderEvent
from pyinpage.exceptions import (
    InvalidRequestError,
    ProviderConfigError,
    ProviderDisconnectedError,
    ProviderError,
    ProviderRpcError,
    TransportError,
    UnsupportedMethodError,
)
from pyinpage.models import ProviderState
from pyinpage.provider import InpageProvider
from pyinpage.state import LegacyInterop, StateStore

__all__ = [
    "__version__",
    "EventEmitter",
    "InpageProvider",
    "InvalidRequestError",
    "LegacyInterop",
    "MqttTransport",
    "ProviderConfig",
    "ProviderConfigError",
    "ProviderDisconnectedError",
    "ProviderError",
    "ProviderEvent",
    "ProviderRpcError",
    "ProviderState",
    "RpcTransport",
    "StateStore",
    "Transport",
    "TransportConfig",
    "UnsupportedMethodError",
    "WebSocketTransport",
]
