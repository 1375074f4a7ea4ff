"""Request correlation between callers, the transport and the state store."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Coroutine, Mapping
from typing import Any

from pyinpage._constants import (
    ACCOUNT_METHODS,
    ETH_ACCOUNTS,
    ETH_COINBASE,
    ETH_UNINSTALL_FILTER,
    NET_VERSION,
    unsupported_sync_message,
)
from pyinpage._transport import Transport
from pyinpage.config import ProviderConfig
from pyinpage.exceptions import InvalidRequestError, ProviderRpcError, UnsupportedMethodError
from pyinpage.state.store import StateStore

_logger = logging.getLogger(__name__)

Payload = Mapping[str, Any] | list[Mapping[str, Any]]
ResponseCallback = Callable[[BaseException | None, Any], Any]


def _noop(*_args: Any) -> None:
    return None


def _relay_outcome(waiter: asyncio.Future[Any], task: asyncio.Future[Any]) -> None:
    """Copy a transport task's outcome onto the caller's waiter."""
    if task.cancelled():
        if not waiter.done():
            waiter.cancel()
        return
    exc = task.exception()
    if waiter.done():
        return
    if exc is not None:
        waiter.set_exception(exc)
    else:
        waiter.set_result(task.result())


def unwrap_response(response: Any) -> Any:
    """Return the result of a JSON-RPC response, raising its error if any.

    Batch responses are returned as-is.
    """
    if isinstance(response, list):
        return response
    if not isinstance(response, Mapping):
        raise ProviderRpcError("Invalid JSON-RPC response.", data=response)
    if response.get("error") is not None:
        raise ProviderRpcError.from_error_payload(response["error"])
    return response.get("result")


class RequestCorrelator:
    """Turns caller requests into awaitable results.

    Results of ``eth_accounts`` and ``eth_requestAccounts`` are applied to the
    state store before the caller sees them.  Internally triggered work
    (account refresh, fire-and-forget legacy calls) runs as background tasks
    that never raise into unrelated code.
    """

    def __init__(self, transport: Transport, store: StateStore, config: ProviderConfig) -> None:
        self._transport = transport
        self._store = store
        self._config = config
        self._in_flight: set[asyncio.Future[Any]] = set()
        self._background: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        """Run *coro* without awaiting it, keeping a reference until it finishes."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def cancel_background(self) -> None:
        tasks = [task for task in self._background if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def reject_pending(self, error: BaseException) -> int:
        """Fail every request still waiting on the transport.  Returns how many."""
        rejected = 0
        for waiter in list(self._in_flight):
            if not waiter.done():
                waiter.set_exception(error)
                rejected += 1
        return rejected

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _forward(self, payload: Any) -> Any:
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[Any] = loop.create_future()
        task = asyncio.ensure_future(self._transport.send_request(payload))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(functools.partial(_relay_outcome, waiter))
        self._in_flight.add(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._in_flight.discard(waiter)

    async def dispatch(self, payload: Payload, *, is_internal: bool = False) -> Any:
        """Send a raw JSON-RPC payload and return the raw response.

        Batches (lists) are forwarded untouched.  Single requests get a protocol
        version tag when missing, and account methods update the state store
        before this coroutine returns.
        """
        if isinstance(payload, list):
            return await self._forward(list(payload))
        if not isinstance(payload, Mapping):
            raise InvalidRequestError(
                "Expected a request object or an array of request objects.",
                data=payload,
            )

        request = dict(payload)
        if not request.get("jsonrpc"):
            request["jsonrpc"] = self._config.jsonrpc_version

        method = request.get("method")
        if not isinstance(method, str):
            raise InvalidRequestError(f"The request 'method' must be a string. Received: {method!r}", data=request)

        response = await self._forward(request)

        if method in ACCOUNT_METHODS:
            result = response.get("result") if isinstance(response, Mapping) else None
            self._store.apply_accounts(
                result or [],
                from_legacy_accounts_call=method == ETH_ACCOUNTS,
                is_internal_refresh=is_internal,
            )

        if isinstance(response, Mapping) and response.get("error") is not None:
            _logger.error("Provider: RPC error for %s: %r", method, response["error"])
        return response

    async def request(self, args: Any) -> Any:
        """Validate caller arguments, send the request and unwrap its result."""
        if not isinstance(args, Mapping):
            raise InvalidRequestError("Expected a single, non-array, object argument.", data=args)

        method = args.get("method")
        if not isinstance(method, str) or not method:
            raise InvalidRequestError("'args.method' must be a non-empty string.", data=args)

        payload: dict[str, Any] = {"method": method}
        params = args.get("params")
        if params is not None:
            payload["params"] = params
        return unwrap_response(await self.dispatch(payload))

    async def request_batch(self, requests: Any) -> list[Any]:
        if not isinstance(requests, list):
            raise InvalidRequestError(
                "Batch requests must be made with an array of request objects.",
                data=requests,
            )
        return unwrap_response(await self.dispatch(requests))

    def schedule_accounts_resync(self) -> None:
        """Refresh accounts after an unlock; failures are only logged."""
        self.spawn(self._resync_accounts(), name="pyinpage-accounts-resync")

    async def _resync_accounts(self) -> None:
        try:
            await self.dispatch({"method": ETH_ACCOUNTS, "params": []}, is_internal=True)
        except Exception:
            _logger.debug("Account refresh after unlock failed", exc_info=True)

    # ------------------------------------------------------------------
    # Legacy surface
    # ------------------------------------------------------------------

    def send_async(self, payload: Payload, callback: ResponseCallback) -> None:
        """Submit a raw payload; *callback* receives ``(error, response)``."""
        self.spawn(self._send_with_callback(payload, callback), name="pyinpage-send-async")

    async def _send_with_callback(self, payload: Payload, callback: ResponseCallback) -> None:
        error: BaseException | None = None
        response: Any = None
        try:
            response = await self.dispatch(payload)
            if isinstance(response, Mapping) and response.get("error") is not None:
                error = ProviderRpcError.from_error_payload(response["error"])
        except Exception as exc:
            error = exc
        try:
            callback(error, response)
        except Exception:
            _logger.error("send_async callback raised", exc_info=True)

    async def send_method(self, method: str, params: list[Any] | None) -> Any:
        """``send(method, params)``: resolves with the whole response object."""
        payload: dict[str, Any] = {"method": method}
        if params is not None:
            payload["params"] = params
        response = await self.dispatch(payload)
        unwrap_response(response)
        return response

    def send(self, method_or_payload: Any, callback_or_params: Any = None) -> Any:
        """Legacy multi-shape dispatcher.

        * ``send(method, params)`` returns a task resolving to the response.
        * ``send(payload, callback)`` behaves as :meth:`send_async`.
        * ``send(payload)`` is answered synchronously from local state.
        """
        if isinstance(method_or_payload, str) and (
            not callback_or_params or isinstance(callback_or_params, list)
        ):
            params = callback_or_params if isinstance(callback_or_params, list) else None
            return self.spawn(self.send_method(method_or_payload, params))
        if isinstance(method_or_payload, (Mapping, list)) and callable(callback_or_params):
            return self.send_async(method_or_payload, callback_or_params)
        return self.send_sync(method_or_payload)

    def send_sync(self, payload: Any) -> dict[str, Any]:
        """Answer the few methods that can be served from local state.

        Raises :class:`UnsupportedMethodError` for anything else.
        """
        method = payload.get("method") if isinstance(payload, Mapping) else None
        selected = self._store.selected_address

        result: Any
        if method == ETH_ACCOUNTS:
            result = [selected] if selected else []
        elif method == ETH_COINBASE:
            result = selected or None
        elif method == ETH_UNINSTALL_FILTER:
            self.send_async(payload, _noop)
            result = True
        elif method == NET_VERSION:
            result = self._store.network_version or None
        else:
            raise UnsupportedMethodError(unsupported_sync_message(method), data=payload)

        return {
            "id": payload.get("id"),
            "jsonrpc": payload.get("jsonrpc"),
            "result": result,
        }
