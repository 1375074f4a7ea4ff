#!/usr/bin/env python3
"""Connect to a wallet backend and print provider state and events.

Reads transport settings from ``INPAGE_*`` environment variables (see
``ProviderConfig.from_env``).  Useful to check that a backend pushes the
expected notifications in the expected order.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyinpage import (  # noqa: E402
    InpageProvider,
    MqttTransport,
    ProviderConfig,
    ProviderError,
    ProviderEvent,
    WebSocketTransport,
)

_WATCHED_EVENTS = (
    ProviderEvent.CONNECT,
    ProviderEvent.DISCONNECT,
    ProviderEvent.CHAIN_CHANGED,
    ProviderEvent.ACCOUNTS_CHANGED,
    ProviderEvent.MESSAGE,
    ProviderEvent.ERROR,
)


def _print_event(event: str, *args: Any) -> None:
    body = json.dumps(args[0] if len(args) == 1 else list(args), default=str)
    print(f"[event] {event}: {body}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Watch a wallet provider session.")
    parser.add_argument("--carrier", choices=("ws", "mqtt"), default="ws", help="Transport to use")
    parser.add_argument("--duration", type=float, default=30.0, help="Seconds to keep watching")
    parser.add_argument("--request", action="append", default=[], help="RPC method to call after bootstrap")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = ProviderConfig.from_env()
    transport = WebSocketTransport(config.transport) if args.carrier == "ws" else MqttTransport(config.transport)

    async with InpageProvider(transport, config) as provider:
        for event in _WATCHED_EVENTS:
            provider.on(event, lambda *a, _event=event: _print_event(_event, *a))

        bootstrap = await provider.start()
        synced = await bootstrap
        print(f"bootstrap : {'ok' if synced else 'FAILED'}")
        print(f"state     : {provider.state.model_dump_json()}")

        for method in args.request:
            try:
                result = await provider.request({"method": method})
                print(f"[request] {method}: {json.dumps(result, default=str)}")
            except ProviderError as exc:
                print(f"[request] {method} failed: {exc}")

        await asyncio.sleep(args.duration)


if __name__ == "__main__":
    asyncio.run(main())
