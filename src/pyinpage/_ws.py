"""WebSocket carrier built on aiohttp."""

from __future__ import annotations

import asyncio
import contextlib
import logging

import aiohttp

from pyinpage._constants import CONNECTION_LABEL
from pyinpage._transport import RpcTransport
from pyinpage.config import TransportConfig
from pyinpage.exceptions import TransportError

_logger = logging.getLogger(__name__)


class WebSocketTransport(RpcTransport):
    """Multiplexed JSON-RPC over a single WebSocket connection.

    Usage::

        transport = WebSocketTransport(config.transport)
        async with InpageProvider(transport, config) as provider:
            ...
    """

    def __init__(
        self,
        config: TransportConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__(config)
        self._external_session = session is not None
        self._http_session = session
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._closing = False

    @property
    def is_running(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def start(self) -> None:
        if self.is_running:
            return
        self._closing = False
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        _logger.debug("WebSocket connect url=%s", self._config.url)
        try:
            self._ws = await self._http_session.ws_connect(self._config.url, heartbeat=self._config.heartbeat)
        except aiohttp.ClientError as exc:
            raise TransportError(f"Connection to {self._config.url} failed: {exc}", label=CONNECTION_LABEL) from exc
        self._reader = asyncio.create_task(self._read_loop(self._ws), name="pyinpage-ws-reader")

    async def close(self) -> None:
        self._closing = True
        reader = self._reader
        self._reader = None
        ws = self._ws
        self._ws = None
        if ws is not None:
            await ws.close()
        if reader is not None:
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    async def _write_frame(self, text: str) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            raise TransportError("WebSocket is not connected", label=CONNECTION_LABEL)
        await ws.send_str(text)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        error: BaseException | None = None
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._handle_frame(msg.data.decode("utf-8", errors="replace"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = ws.exception()
                    break
        except Exception as exc:
            error = exc
        if not self._closing:
            _logger.debug("WebSocket reader stopped close_code=%s", ws.close_code)
            self._report_failure(error)
