from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyinpage import InpageProvider, ProviderConfig, WebSocketTransport
from pyinpage.config import TransportConfig
from pyinpage.exceptions import ProviderDisconnectedError, ProviderRpcError


@dataclass
class FakeWalletBackend:
    stream_name: str = "provider"
    chain_id: str = "0x1"
    network_version: str = "1"
    unlocked: bool = True
    accounts: list[str] = field(default_factory=lambda: ["0xabc", "0xdef"])
    approved: bool = False
    state_should_fail: bool = False
    unanswered: set[str] = field(default_factory=set)
    calls: dict[str, int] = field(default_factory=dict)
    deliver: Callable[[str], None] | None = None
    report_failure: Callable[[BaseException | None], None] | None = None

    def _record_call(self, method: str) -> None:
        self.calls[method] = self.calls.get(method, 0) + 1

    def _frame(self, data: Any) -> str:
        return json.dumps({"name": self.stream_name, "data": data})

    def _exposed(self) -> list[str]:
        return list(self.accounts) if self.approved and self.unlocked else []

    def push(self, method: str, params: Any) -> None:
        assert self.deliver is not None
        self.deliver(self._frame({"jsonrpc": "2.0", "method": method, "params": params}))

    def receive(self, message: dict[str, Any]) -> list[str]:
        method = message["method"]
        self._record_call(method)
        if method in self.unanswered:
            return []

        reply: dict[str, Any] = {"id": message["id"], "jsonrpc": message.get("jsonrpc", "2.0")}
        extra: list[str] = []

        if method == "wallet_getProviderState":
            if self.state_should_fail:
                reply["error"] = {"code": -32603, "message": "state unavailable"}
            else:
                reply["result"] = {
                    "chainId": self.chain_id,
                    "networkVersion": self.network_version,
                    "isUnlocked": self.unlocked,
                    "accounts": self._exposed(),
                }
        elif method == "eth_accounts":
            reply["result"] = self._exposed()
        elif method == "eth_requestAccounts":
            self.approved = True
            reply["result"] = self._exposed()
        elif method == "eth_chainId":
            reply["result"] = self.chain_id
        elif method == "eth_subscribe":
            reply["result"] = "0x9"
            extra.append(
                self._frame(
                    {
                        "jsonrpc": "2.0",
                        "method": "eth_subscription",
                        "params": {"subscription": "0x9", "result": {"number": "0x10"}},
                    }
                )
            )
        else:
            reply["error"] = {"code": -32601, "message": f"The method {method} does not exist"}

        return [self._frame(reply), *extra]

    # Wallet-side actions

    def switch_chain(self, chain_id: str, network_version: str) -> None:
        self.chain_id = chain_id
        self.network_version = network_version
        self.push("wallet_chainChanged", {"chainId": chain_id, "networkVersion": network_version})

    def lock(self) -> None:
        self.unlocked = False
        self.push("wallet_unlockStateChanged", False)

    def crash(self) -> None:
        assert self.report_failure is not None
        self.report_failure(ConnectionResetError("wallet process exited"))


@pytest.fixture
def config() -> ProviderConfig:
    return ProviderConfig(transport=TransportConfig(url="ws://wallet.invalid/rpc"))


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeWalletBackend:
    fake_backend = FakeWalletBackend()

    async def fake_start(self: Any) -> None:
        fake_backend.deliver = self._handle_frame
        fake_backend.report_failure = self._report_failure

    async def fake_close(self: Any) -> None:
        fake_backend.deliver = None

    async def fake_write_frame(self: Any, text: str) -> None:
        frame = json.loads(text)
        assert frame["name"] == fake_backend.stream_name
        messages = frame["data"] if isinstance(frame["data"], list) else [frame["data"]]
        loop = asyncio.get_running_loop()
        for message in messages:
            for outbound in fake_backend.receive(message):
                loop.call_soon(self._handle_frame, outbound)

    monkeypatch.setattr("pyinpage._ws.WebSocketTransport.start", fake_start)
    monkeypatch.setattr("pyinpage._ws.WebSocketTransport.close", fake_close)
    monkeypatch.setattr("pyinpage._ws.WebSocketTransport._write_frame", fake_write_frame)
    return fake_backend


async def _settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_provider_happy_path(config: ProviderConfig, backend: FakeWalletBackend) -> None:
    events: list[tuple[str, tuple[Any, ...]]] = []

    def record(name: str) -> Callable[..., None]:
        return lambda *args: events.append((name, args))

    provider = InpageProvider(WebSocketTransport(config.transport), config)
    for name in ("connect", "disconnect", "chainChanged", "accountsChanged", "message"):
        provider.on(name, record(name))

    async with provider:
        assert await (await provider.start()) is True
        await _settle()

        assert provider.chain_id == "0x1"
        assert provider.network_version == "1"
        assert provider.selected_address is None
        assert ("connect", ({"chainId": "0x1"},)) in events

        accounts = await provider.request({"method": "eth_requestAccounts"})
        assert accounts == ["0xabc", "0xdef"]
        assert provider.selected_address == "0xabc"
        assert provider.send({"method": "eth_coinbase"})["result"] == "0xabc"

        backend.switch_chain("0x5", "5")
        assert provider.chain_id == "0x5"
        assert provider.send({"id": 1, "method": "net_version"})["result"] == "5"
        assert await provider.request({"method": "eth_chainId"}) == "0x5"

        subscription = await provider.request({"method": "eth_subscribe", "params": ["newHeads"]})
        assert subscription == "0x9"
        await _settle()

        with pytest.raises(ProviderRpcError) as exc_info:
            await provider.request({"method": "eth_mine"})
        assert exc_info.value.code == -32601

        backend.lock()
        assert provider.selected_address is None

        backend.crash()
        assert provider.state.is_connected is False

    names = [name for name, _ in events]
    assert names.count("connect") == 1
    assert names.count("disconnect") == 1
    assert names.count("chainChanged") == 2
    assert [args for name, args in events if name == "accountsChanged"] == [([],), (["0xabc", "0xdef"],), ([],)]
    assert [args[0]["type"] for name, args in events if name == "message"] == ["eth_subscription"]
    assert backend.calls["wallet_getProviderState"] == 1


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_bootstrap_failure_recovers_through_notifications(
    config: ProviderConfig, backend: FakeWalletBackend
) -> None:
    backend.state_should_fail = True
    connects: list[Any] = []

    async with InpageProvider(WebSocketTransport(config.transport), config) as provider:
        provider.on("connect", connects.append)
        assert await (await provider.start()) is False
        assert provider.chain_id is None

        backend.switch_chain("0x89", "137")

        assert provider.chain_id == "0x89"
        assert provider.state.is_connected is None
        assert connects == []


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_pending_requests_rejected_on_crash(backend: FakeWalletBackend) -> None:
    config = ProviderConfig(reject_pending_on_disconnect=True)
    backend.unanswered.add("eth_sendTransaction")

    async with InpageProvider(WebSocketTransport(config.transport), config) as provider:
        await (await provider.start())
        pending = asyncio.create_task(provider.request({"method": "eth_sendTransaction", "params": [{}]}))
        await _settle()
        assert not pending.done()

        backend.crash()

        with pytest.raises(ProviderDisconnectedError):
            await pending
