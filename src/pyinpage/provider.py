"""High-level async wallet provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pyinpage._constants import ETH_REQUEST_ACCOUNTS, WARN_ENABLE, WARN_IS_CONNECTED, WARN_SEND
from pyinpage._experimental import ExperimentalApi
from pyinpage._lifecycle import Bootstrapper, DisconnectHandler
from pyinpage._notifications import NotificationRouter
from pyinpage._rpc import RequestCorrelator, ResponseCallback
from pyinpage._transport import Transport
from pyinpage.config import ProviderConfig
from pyinpage.events import EventEmitter, Listener, warns_on_deprecated_event
from pyinpage.exceptions import ProviderConfigError, ProviderDisconnectedError
from pyinpage.models.state import ProviderState
from pyinpage.state.store import LegacyInterop, StateStore

_logger = logging.getLogger(__name__)


class InpageProvider(EventEmitter):
    """Wallet provider kept in sync with a backend over an opaque transport.

    Usage::

        async with InpageProvider(WebSocketTransport(config.transport), config) as provider:
            accounts = await provider.request({"method": "eth_requestAccounts"})

    Public state (``chain_id``, ``network_version``, ``selected_address``) is
    read-only and only ever changes through backend notifications, responses
    to account requests, or the startup bootstrap.
    """

    is_wallet = True

    def __init__(
        self,
        transport: Transport,
        config: ProviderConfig | None = None,
        *,
        legacy: LegacyInterop | None = None,
    ) -> None:
        if transport is None or (config is not None and not isinstance(config, ProviderConfig)):
            raise ProviderConfigError("Invalid options.")
        self._config = config or ProviderConfig()
        super().__init__(max_listeners=self._config.max_event_listeners)

        self._transport = transport
        self._sent_warnings: set[str] = set()
        self._started = False

        self._store = StateStore(
            emit=self.emit,
            request_accounts=self._schedule_accounts_resync,
            legacy=legacy,
        )
        self._rpc = RequestCorrelator(transport, self._store, self._config)
        self._router = NotificationRouter(self._store, self.emit)
        self._bootstrapper = Bootstrapper(self._rpc, self._store, self.emit)
        self._disconnect_handler = DisconnectHandler(self._store, self, on_failure=self._on_transport_failure)
        self.experimental = ExperimentalApi(self)

        transport.on_notification(self._router.route)
        transport.on_transport_failure(self._disconnect_handler.handle)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> InpageProvider:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> asyncio.Task[bool]:
        """Start the transport and schedule the state bootstrap.

        Returns the bootstrap task; awaiting it is optional.
        """
        if not self._started:
            await self._transport.start()
            self._started = True
        return self._bootstrapper.start()

    async def close(self) -> None:
        await self._rpc.cancel_background()
        if self._started:
            self._started = False
            await self._transport.close()

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def chain_id(self) -> str | None:
        return self._store.chain_id

    @property
    def network_version(self) -> str | None:
        return self._store.network_version

    @property
    def selected_address(self) -> str | None:
        return self._store.selected_address

    @property
    def state(self) -> ProviderState:
        """Snapshot of the full internal state."""
        return self._store.state

    @property
    def config(self) -> ProviderConfig:
        return self._config

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(self, args: Any) -> Any:
        """Submit an RPC request and return its result.

        *args* must be a mapping with a non-empty string ``method`` and
        optional ``params``.  Raises :class:`~pyinpage.exceptions.InvalidRequestError`
        for malformed arguments and :class:`~pyinpage.exceptions.ProviderRpcError`
        for errors returned by the wallet.
        """
        return await self._rpc.request(args)

    def send_async(self, payload: Any, callback: ResponseCallback) -> None:
        """Submit a raw JSON-RPC payload; *callback* receives ``(error, response)``."""
        self._rpc.send_async(payload, callback)

    # ------------------------------------------------------------------
    # Event subscription (deprecated events warn once)
    # ------------------------------------------------------------------

    @warns_on_deprecated_event
    def add_listener(self, event: str, listener: Listener) -> InpageProvider:
        super().add_listener(event, listener)
        return self

    @warns_on_deprecated_event
    def on(self, event: str, listener: Listener) -> InpageProvider:
        super().on(event, listener)
        return self

    @warns_on_deprecated_event
    def once(self, event: str, listener: Listener) -> InpageProvider:
        super().once(event, listener)
        return self

    @warns_on_deprecated_event
    def prepend_listener(self, event: str, listener: Listener) -> InpageProvider:
        super().prepend_listener(event, listener)
        return self

    @warns_on_deprecated_event
    def prepend_once_listener(self, event: str, listener: Listener) -> InpageProvider:
        super().prepend_once_listener(event, listener)
        return self

    # ------------------------------------------------------------------
    # Deprecated methods
    # ------------------------------------------------------------------

    def is_connected(self) -> bool | None:
        """Deprecated.  Whether the provider believes it is connected."""
        self._warn_once("is_connected", WARN_IS_CONNECTED)
        return self._store.is_connected

    async def enable(self) -> list[str]:
        """Deprecated.  Equivalent to requesting ``eth_requestAccounts``."""
        self._warn_once("enable", WARN_ENABLE)
        return await self._rpc.request({"method": ETH_REQUEST_ACCOUNTS, "params": []})

    def send(self, method_or_payload: Any, callback_or_params: Any = None) -> Any:
        """Deprecated.  Return type depends on the call shape.

        * ``send("method", [params])`` returns a task resolving to the response object.
        * ``send(payload, callback)`` submits asynchronously and returns ``None``.
        * ``send(payload)`` answers ``eth_accounts``, ``eth_coinbase``,
          ``eth_uninstallFilter`` and ``net_version`` synchronously and raises
          :class:`~pyinpage.exceptions.UnsupportedMethodError` otherwise.
        """
        self._warn_once("send", WARN_SEND)
        return self._rpc.send(method_or_payload, callback_or_params)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _warn_once(self, key: str, message: str) -> None:
        if not self._config.warn_deprecations or key in self._sent_warnings:
            return
        self._sent_warnings.add(key)
        _logger.warning(message)

    def _schedule_accounts_resync(self) -> None:
        self._rpc.schedule_accounts_resync()

    def _on_transport_failure(self, label: str, error: BaseException | None) -> None:
        if not self._config.reject_pending_on_disconnect:
            return
        rejected = self._rpc.reject_pending(
            ProviderDisconnectedError(f"Transport lost: {label}", data={"label": label}),
        )
        if rejected:
            _logger.debug("Rejected %d pending request(s) after losing %s", rejected, label)
