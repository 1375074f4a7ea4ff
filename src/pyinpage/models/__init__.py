"""Data models for provider state and JSON-RPC wire messages."""

from pyinpage.models.rpc import JsonRpcNotification, JsonRpcResponse, MuxFrame
from pyinpage.models.state import ProviderState, ProviderStateSnapshot

__all__ = [
    "JsonRpcNotification",
    "JsonRpcResponse",
    "MuxFrame",
    "ProviderState",
    "ProviderStateSnapshot",
]
