"""Custom exception hierarchy for pyinpage."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class ProviderError(Exception):
    """Base exception for all pyinpage errors."""


class ProviderConfigError(ProviderError):
    """Invalid provider or transport options."""


class TransportError(ProviderError):
    """Carrier-level failure (connection lost, write failed, bad frame)."""

    def __init__(self, message: str, *, label: str = "") -> None:
        self.label = label
        super().__init__(message)


class ProviderRpcError(ProviderError):
    """JSON-RPC error surfaced to the caller of a request."""

    default_code: int = -32603

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        data: Any = None,
    ) -> None:
        self.code = self.default_code if code is None else code
        self.message = message
        self.data = data
        super().__init__(message)

    @classmethod
    def from_error_payload(cls, error: Any) -> ProviderRpcError:
        """Build an error from the ``error`` member of a JSON-RPC response.

        Backends are not trusted to send well-formed error objects, so
        anything that is not a mapping becomes an internal error.
        """
        if not isinstance(error, Mapping):
            return cls("Internal JSON-RPC error.", data=error)
        code = error.get("code")
        message = error.get("message")
        return cls(
            message if isinstance(message, str) and message else "Internal JSON-RPC error.",
            code=code if isinstance(code, int) and not isinstance(code, bool) else None,
            data=error.get("data"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class InvalidRequestError(ProviderRpcError):
    """Malformed caller input to ``request()`` (code -32600)."""

    default_code = -32600


class UnsupportedMethodError(ProviderRpcError):
    """Method not available on the synchronous emulation path (code 4200).

    Raised synchronously rather than through an awaitable, matching the
    legacy ``send(payload)`` contract.
    """

    default_code = 4200


class ProviderDisconnectedError(ProviderRpcError):
    """Request abandoned because the transport went away (code 4900).

    Only raised when ``ProviderConfig.reject_pending_on_disconnect`` is set.
    """

    default_code = 4900
