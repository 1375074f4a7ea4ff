"""Startup bootstrap and transport-loss handling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from pyinpage._constants import GET_PROVIDER_STATE, lost_connection_message
from pyinpage._rpc import RequestCorrelator
from pyinpage.events import EventEmitter, ProviderEvent
from pyinpage.models.state import ProviderStateSnapshot
from pyinpage.state.store import StateStore

_logger = logging.getLogger(__name__)


class Bootstrapper:
    """Fetches the full provider state once at startup.

    There is no retry: on failure the provider stays unsynced until a
    notification happens to arrive.
    """

    def __init__(self, rpc: RequestCorrelator, store: StateStore, emit: Callable[..., Any]) -> None:
        self._rpc = rpc
        self._store = store
        self._emit = emit
        self._task: asyncio.Task[bool] | None = None

    @property
    def task(self) -> asyncio.Task[bool] | None:
        return self._task

    def start(self) -> asyncio.Task[bool]:
        """Schedule the bootstrap without blocking the caller."""
        if self._task is None:
            self._task = self._rpc.spawn(self.run(), name="pyinpage-bootstrap")
        return self._task

    async def run(self) -> bool:
        """Fetch and apply the provider state.  Returns whether it succeeded."""
        try:
            result = await self._rpc.request({"method": GET_PROVIDER_STATE})
            snapshot = ProviderStateSnapshot.model_validate(result)
        except Exception:
            _logger.error("Provider: Failed to get initial state. Please report this bug.", exc_info=True)
            return False

        self._store.apply_chain_info(snapshot.chain_id, snapshot.network_version)
        self._store.apply_accounts(snapshot.accounts)
        self._store.apply_unlock_state(snapshot.is_unlocked)

        self._store.mark_connected()
        self._emit(ProviderEvent.CONNECT, {"chainId": self._store.chain_id})
        return True


class DisconnectHandler:
    """Reacts to transport failure.

    Connectivity always drops to ``False``; ``disconnect`` fires only when a
    connected session is lost, so a carrier reporting several failed channels
    produces a single event.
    """

    def __init__(
        self,
        store: StateStore,
        emitter: EventEmitter,
        *,
        on_failure: Callable[[str, BaseException | None], None] | None = None,
    ) -> None:
        self._store = store
        self._emitter = emitter
        self._on_failure = on_failure

    def handle(self, label: str, error: BaseException | None = None) -> None:
        message = lost_connection_message(label)
        if error is not None:
            _logger.warning("%s", message, exc_info=error)
        else:
            _logger.warning("%s", message)

        if self._emitter.listener_count(ProviderEvent.ERROR) > 0:
            warning = message if error is None else f"{message}\n{error!r}"
            self._emitter.emit(ProviderEvent.ERROR, warning)

        self._store.mark_disconnected()

        if self._on_failure is not None:
            self._on_failure(label, error)
