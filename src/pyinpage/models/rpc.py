"""JSON-RPC wire envelopes.

These models only classify inbound frames.  Payload contents stay raw so the
state store can apply its own, non-raising validation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MuxFrame(BaseModel):
    """One frame of the multiplexed connection stream."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """Response to a request issued by this process."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: int | str
    jsonrpc: str = "2.0"
    result: Any = None
    error: Any = None

    @property
    def is_error(self) -> bool:
        return "error" in self.model_fields_set and self.error is not None


class JsonRpcNotification(BaseModel):
    """Backend-pushed message that answers no request."""

    model_config = ConfigDict(frozen=True, extra="allow")

    method: str = Field(..., min_length=1)
    jsonrpc: str = "2.0"
    params: Any = None
    result: Any = None

    @property
    def payload(self) -> Any:
        """Notification body; older backends send it as ``result``."""
        if "result" in self.model_fields_set:
            return self.result
        return self.params
