"""State layer.

This package is the single source of truth for provider state: chain,
network, accounts, unlock and connectivity.  Notifications, responses and
the startup bootstrap all reach it through :class:`StateStore` transitions.
"""

from pyinpage.state.store import LegacyInterop, StateStore

__all__ = ["LegacyInterop", "StateStore"]
