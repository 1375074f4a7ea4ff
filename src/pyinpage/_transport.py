"""Transport contract and the JSON-RPC correlation base shared by carriers."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import ValidationError

from pyinpage._constants import CONNECTION_LABEL, PROVIDER_STREAM_LABEL
from pyinpage.config import TransportConfig
from pyinpage.exceptions import TransportError
from pyinpage.models.rpc import JsonRpcResponse, MuxFrame

_logger = logging.getLogger(__name__)

NotificationHandler = Callable[[dict[str, Any]], None]
FailureHandler = Callable[[str, BaseException | None], None]


class Transport(Protocol):
    """Structural transport interface consumed by the provider.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production carriers concrete.
    """

    async def start(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def send_request(self, payload: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> Any:
        ...

    def on_notification(self, handler: NotificationHandler) -> None:
        ...

    def on_transport_failure(self, handler: FailureHandler) -> None:
        ...


@dataclass(slots=True)
class _PendingRequest:
    """A request waiting for its response; ``original_id`` is restored on delivery."""

    future: asyncio.Future[dict[str, Any]]
    original_id: Any


class RpcTransport:
    """Correlation layer for multiplexed JSON-RPC carriers.

    Subclasses implement :meth:`start`, :meth:`close` and :meth:`_write_frame`,
    and feed every received text frame to :meth:`_handle_frame`.

    Outbound ids are remapped to process-unique integers so that ids chosen by
    different callers can never collide; the caller's id is put back on the
    response.  Pending futures are never failed by the carrier itself.
    """

    def __init__(self, config: TransportConfig) -> None:
        self._config = config
        self._ids = itertools.count(1)
        self._pending: dict[int, _PendingRequest] = {}
        self._notification_handlers: list[NotificationHandler] = []
        self._failure_handlers: list[FailureHandler] = []

    # ------------------------------------------------------------------
    # Transport protocol
    # ------------------------------------------------------------------

    async def start(self) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    def on_notification(self, handler: NotificationHandler) -> None:
        self._notification_handlers.append(handler)

    def on_transport_failure(self, handler: FailureHandler) -> None:
        self._failure_handlers.append(handler)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def send_request(self, payload: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> Any:
        """Send a request (or batch) and wait for the matching response(s)."""
        if isinstance(payload, Mapping):
            message, future = self._register(payload)
            try:
                await self._write_payload(message)
                return await future
            finally:
                self._forget(message["id"])

        registered = [self._register(item) for item in payload]
        try:
            await self._write_payload([message for message, _ in registered])
            return list(await asyncio.gather(*(future for _, future in registered)))
        finally:
            for message, _ in registered:
                self._forget(message["id"])

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    async def _write_frame(self, text: str) -> None:
        raise NotImplementedError

    async def _write_payload(self, payload: Any) -> None:
        frame = {"name": self._config.stream_name, "data": payload}
        text = json.dumps(frame, separators=(",", ":"))
        _logger.debug("-> %s", text)
        try:
            await self._write_frame(text)
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"Failed to write frame: {exc}", label=PROVIDER_STREAM_LABEL) from exc

    def _handle_frame(self, text: str) -> None:
        """Demultiplex one inbound text frame."""
        _logger.debug("<- %s", text)
        try:
            frame = MuxFrame.model_validate_json(text)
        except ValidationError:
            _logger.debug("Dropping malformed frame", exc_info=True)
            return

        if frame.name in self._config.ignored_streams:
            return
        if frame.name != self._config.stream_name:
            _logger.debug("Dropping frame for unknown stream %r", frame.name)
            return

        messages = frame.data if isinstance(frame.data, list) else [frame.data]
        for message in messages:
            if isinstance(message, dict):
                self._handle_message(message)

    def _handle_message(self, message: dict[str, Any]) -> None:
        if "id" in message and ("result" in message or "error" in message):
            self._resolve(message)
            return
        if isinstance(message.get("method"), str):
            for handler in list(self._notification_handlers):
                try:
                    handler(message)
                except Exception:
                    _logger.error("Notification handler raised", exc_info=True)
            return
        _logger.debug("Dropping unrecognized message %r", message)

    def _report_failure(self, error: BaseException | None) -> None:
        """Tell failure handlers that both the connection and the RPC stream are gone."""
        for label in (CONNECTION_LABEL, PROVIDER_STREAM_LABEL):
            for handler in list(self._failure_handlers):
                try:
                    handler(label, error)
                except Exception:
                    _logger.error("Transport failure handler raised", exc_info=True)

    # ------------------------------------------------------------------
    # Correlation
    # ------------------------------------------------------------------

    def _register(self, payload: Mapping[str, Any]) -> tuple[dict[str, Any], asyncio.Future[dict[str, Any]]]:
        internal_id = next(self._ids)
        message = dict(payload)
        original_id = message.get("id")
        message["id"] = internal_id
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[internal_id] = _PendingRequest(future=future, original_id=original_id)
        return message, future

    def _forget(self, internal_id: int) -> None:
        with contextlib.suppress(KeyError):
            del self._pending[internal_id]

    def _resolve(self, message: dict[str, Any]) -> None:
        try:
            response = JsonRpcResponse.model_validate(message)
        except ValidationError:
            _logger.debug("Dropping malformed response %r", message)
            return
        pending = self._pending.pop(response.id, None) if isinstance(response.id, int) else None
        if pending is None:
            _logger.debug("Dropping response with unknown id %r", response.id)
            return
        if pending.future.done():
            return
        restored = dict(message)
        restored["id"] = pending.original_id
        pending.future.set_result(restored)
