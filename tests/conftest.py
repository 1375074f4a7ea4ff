from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyinpage.config import ProviderConfig
from pyinpage.provider import InpageProvider

DEFAULT_PROVIDER_STATE: dict[str, Any] = {
    "chainId": "0x1",
    "networkVersion": "1",
    "isUnlocked": True,
    "accounts": ["0xabc"],
}


@dataclass
class FakeTransport:
    """Scripted wallet backend implementing the ``Transport`` protocol.

    ``replies`` maps a method name to a response fragment (``{"result": ...}``
    or ``{"error": ...}``), an exception to raise, or an ``asyncio.Future``
    whose value becomes the fragment once set.
    """

    replies: dict[str, Any] = field(default_factory=dict)
    sent: list[Any] = field(default_factory=list)
    started: bool = False
    closed: bool = False
    notification_handlers: list[Callable[[dict[str, Any]], None]] = field(default_factory=list)
    failure_handlers: list[Callable[[str, BaseException | None], None]] = field(default_factory=list)

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    def on_notification(self, handler: Callable[[dict[str, Any]], None]) -> None:
        self.notification_handlers.append(handler)

    def on_transport_failure(self, handler: Callable[[str, BaseException | None], None]) -> None:
        self.failure_handlers.append(handler)

    async def send_request(self, payload: Any) -> Any:
        self.sent.append(payload)
        if isinstance(payload, list):
            return [await self._reply(item) for item in payload]
        return await self._reply(payload)

    async def _reply(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        reply = self.replies.get(payload.get("method"))
        if isinstance(reply, asyncio.Future):
            reply = await reply
        if isinstance(reply, BaseException):
            raise reply
        if reply is None:
            reply = {"error": {"code": -32601, "message": "Method not found"}}
        return {"id": payload.get("id"), "jsonrpc": payload.get("jsonrpc", "2.0"), **reply}

    # Test helpers

    def methods_sent(self) -> list[str]:
        return [p.get("method") for p in self.sent if isinstance(p, Mapping)]

    def push(self, method: str, payload: Any, *, key: str = "params") -> None:
        for handler in list(self.notification_handlers):
            handler({"jsonrpc": "2.0", "method": method, key: payload})

    def fail(self, label: str = "WalletConnection", error: BaseException | None = None) -> None:
        for handler in list(self.failure_handlers):
            handler(label, error)


class EventRecorder:
    """Collects ``(event, args)`` pairs in emission order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []

    def listener(self, event: str) -> Callable[..., None]:
        def _record(*args: Any) -> None:
            self.events.append((str(event), args))

        return _record

    def attach(self, emitter: Any, *events: str) -> EventRecorder:
        for event in events:
            emitter.on(event, self.listener(event))
        return self

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of(self, event: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.events if name == str(event)]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(replies={"wallet_getProviderState": {"result": dict(DEFAULT_PROVIDER_STATE)}})


@pytest.fixture
def provider(transport: FakeTransport) -> InpageProvider:
    return InpageProvider(transport, ProviderConfig())


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()
