"""Routing of backend-pushed notifications into state transitions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from pyinpage._constants import (
    EMITTED_NOTIFICATIONS,
    NOTIFY_ACCOUNTS_CHANGED,
    NOTIFY_CHAIN_CHANGED,
    NOTIFY_UNLOCK_STATE_CHANGED,
)
from pyinpage.events import ProviderEvent
from pyinpage.models.rpc import JsonRpcNotification
from pyinpage.state.store import StateStore

_logger = logging.getLogger(__name__)


class NotificationRouter:
    """Maps a known set of notifications to store transitions.

    Allow-listed notifications are re-emitted as ``message`` events.
    Anything else is dropped: backends may push events this client does not
    know about yet.
    """

    def __init__(self, store: StateStore, emit: Callable[..., Any]) -> None:
        self._store = store
        self._emit = emit

    def route(self, raw: Any) -> None:
        try:
            notification = JsonRpcNotification.model_validate(raw)
        except ValidationError:
            _logger.debug("Dropping malformed notification %r", raw)
            return

        method = notification.method
        payload = notification.payload

        if method == NOTIFY_ACCOUNTS_CHANGED:
            self._store.apply_accounts(payload)
        elif method == NOTIFY_UNLOCK_STATE_CHANGED:
            self._store.apply_unlock_state(payload)
        elif method == NOTIFY_CHAIN_CHANGED:
            if isinstance(payload, Mapping):
                self._store.apply_chain_info(payload.get("chainId"), payload.get("networkVersion"))
            else:
                self._store.apply_chain_info(None, None)
        elif method in EMITTED_NOTIFICATIONS:
            self._emit(ProviderEvent.NOTIFICATION, raw)
            self._emit(ProviderEvent.MESSAGE, {"type": method, "data": notification.params})
        else:
            _logger.debug("Ignoring notification %s", method)
