"""Non-standard provider methods, exposed as ``provider.experimental``."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from pyinpage._constants import WARN_EXPERIMENTAL
from pyinpage.events import ProviderEvent

if TYPE_CHECKING:
    from pyinpage.provider import InpageProvider

F = TypeVar("F", bound=Callable[..., Any])


def _experimental(method: F) -> F:
    """Warn once per provider, on the first call to any experimental method."""

    @functools.wraps(method)
    def wrapper(self: ExperimentalApi, *args: Any, **kwargs: Any) -> Any:
        self._provider._warn_once("experimental_methods", WARN_EXPERIMENTAL)
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class ExperimentalApi:
    def __init__(self, provider: InpageProvider) -> None:
        self._provider = provider

    @_experimental
    async def is_unlocked(self) -> bool:
        """Whether the wallet is currently unlocked."""
        return self._provider._store.is_unlocked

    @_experimental
    async def request_batch(self, requests: Any) -> list[Any]:
        """Send a batch of raw requests; resolves with the list of responses."""
        return await self._provider._rpc.request_batch(requests)

    @_experimental
    def is_enabled(self) -> bool:
        """Deprecated.  Whether accounts are exposed, with false negatives before the first sync."""
        accounts = self._provider._store.accounts
        return accounts is not None and len(accounts) > 0

    @_experimental
    async def is_approved(self) -> bool:
        """Deprecated.  Like :meth:`is_enabled`, but waits for the first account sync."""
        store = self._provider._store
        if store.accounts is None:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()

            def _resolve(*_args: Any) -> None:
                if not waiter.done():
                    waiter.set_result(None)

            self._provider.once(ProviderEvent.ACCOUNTS_CHANGED, _resolve)
            await waiter
        accounts = store.accounts
        return accounts is not None and len(accounts) > 0
