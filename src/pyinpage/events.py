"""Provider event catalog and a synchronous event emitter.

Every event the provider can raise is listed in :class:`ProviderEvent`.
Deprecated aliases carry a one-time warning, issued from the subscription
methods through :func:`warns_on_deprecated_event`.
"""

from __future__ import annotations

import functools
import logging
from collections import defaultdict
from collections.abc import Callable
from enum import StrEnum
from typing import Any, TypeVar

_logger = logging.getLogger(__name__)

Listener = Callable[..., Any]
F = TypeVar("F", bound=Callable[..., Any])


class ProviderEvent(StrEnum):
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    CLOSE = "close"
    CHAIN_CHANGED = "chainChanged"
    CHAIN_ID_CHANGED = "chainIdChanged"
    NETWORK_CHANGED = "networkChanged"
    ACCOUNTS_CHANGED = "accountsChanged"
    MESSAGE = "message"
    NOTIFICATION = "notification"
    ERROR = "error"


DEPRECATED_EVENTS: dict[ProviderEvent, str] = {
    ProviderEvent.CLOSE: (
        "Provider: The event 'close' is deprecated and may be removed in the future. "
        "Please use 'disconnect' instead."
    ),
    ProviderEvent.CHAIN_ID_CHANGED: (
        "Provider: The event 'chainIdChanged' is deprecated and WILL be removed in the future. "
        "Please use 'chainChanged' instead."
    ),
    ProviderEvent.NETWORK_CHANGED: (
        "Provider: The event 'networkChanged' is deprecated and may be removed in the future. "
        "Please use 'chainChanged' instead."
    ),
    ProviderEvent.NOTIFICATION: (
        "Provider: The event 'notification' is deprecated and may be removed in the future. "
        "Please use 'message' instead."
    ),
}


class _OnceWrapper:
    __slots__ = ("emitter", "event", "listener", "fired")

    def __init__(self, emitter: EventEmitter, event: str, listener: Listener) -> None:
        self.emitter = emitter
        self.event = event
        self.listener = listener
        self.fired = False

    def __call__(self, *args: Any) -> Any:
        if self.fired:
            return None
        self.fired = True
        self.emitter.remove_listener(self.event, self)
        return self.listener(*args)


class EventEmitter:
    """Minimal synchronous emitter.

    Listeners run in registration order on the emitting call stack.  An
    exception raised by one listener is logged and does not stop the others,
    so a faulty consumer can never break notification processing.
    """

    def __init__(self, *, max_listeners: int = 10) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._max_listeners = max_listeners
        self._warned_limits: set[str] = set()

    def set_max_listeners(self, count: int) -> None:
        self._max_listeners = count

    def _add(self, event: str, listener: Listener, *, prepend: bool) -> None:
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        bucket = self._listeners[str(event)]
        if prepend:
            bucket.insert(0, listener)
        else:
            bucket.append(listener)
        if self._max_listeners and len(bucket) > self._max_listeners and event not in self._warned_limits:
            self._warned_limits.add(str(event))
            _logger.warning(
                "Possible listener leak: %d '%s' listeners added (max %d)",
                len(bucket),
                event,
                self._max_listeners,
            )

    def add_listener(self, event: str, listener: Listener) -> EventEmitter:
        self._add(event, listener, prepend=False)
        return self

    def on(self, event: str, listener: Listener) -> EventEmitter:
        return self.add_listener(event, listener)

    def once(self, event: str, listener: Listener) -> EventEmitter:
        self._add(event, _OnceWrapper(self, str(event), listener), prepend=False)
        return self

    def prepend_listener(self, event: str, listener: Listener) -> EventEmitter:
        self._add(event, listener, prepend=True)
        return self

    def prepend_once_listener(self, event: str, listener: Listener) -> EventEmitter:
        self._add(event, _OnceWrapper(self, str(event), listener), prepend=True)
        return self

    def remove_listener(self, event: str, listener: Listener) -> EventEmitter:
        bucket = self._listeners.get(str(event))
        if not bucket:
            return self
        for index, registered in enumerate(bucket):
            if registered is listener or (isinstance(registered, _OnceWrapper) and registered.listener is listener):
                del bucket[index]
                break
        return self

    def off(self, event: str, listener: Listener) -> EventEmitter:
        return self.remove_listener(event, listener)

    def remove_all_listeners(self, event: str | None = None) -> EventEmitter:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(str(event), None)
        return self

    def listeners(self, event: str) -> list[Listener]:
        return [
            registered.listener if isinstance(registered, _OnceWrapper) else registered
            for registered in self._listeners.get(str(event), [])
        ]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(str(event), []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of *event*; return whether any were registered."""
        bucket = self._listeners.get(str(event))
        if not bucket:
            return False
        for listener in list(bucket):
            try:
                listener(*args)
            except Exception:
                _logger.error("Listener for '%s' raised", event, exc_info=True)
        return True


def warns_on_deprecated_event(method: F) -> F:
    """Wrap a subscription method so deprecated events warn once per emitter.

    The wrapped object must expose ``_warn_once(key, message)``.
    """

    @functools.wraps(method)
    def wrapper(self: Any, event: str, listener: Listener) -> Any:
        try:
            catalog_event = ProviderEvent(event)
        except ValueError:
            catalog_event = None
        if catalog_event in DEPRECATED_EVENTS:
            self._warn_once(f"events.{catalog_event}", DEPRECATED_EVENTS[catalog_event])
        return method(self, event, listener)

    return wrapper  # type: ignore[return-value]
