"""Authoritative provider state.

This is the only component allowed to mutate :class:`ProviderState`.  Every
transition validates its input, and malformed backend data is logged and
discarded rather than raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from pyinpage._constants import DISCONNECT_CODE, DISCONNECT_REASON
from pyinpage.events import ProviderEvent
from pyinpage.models.state import ProviderState

_logger = logging.getLogger(__name__)

Emit = Callable[..., Any]


class LegacyInterop(Protocol):
    """Optional collaborator mirroring the selected address into a legacy object."""

    def set_default_account(self, address: str | None) -> None:
        ...


def _is_account_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


class StateStore:
    """Holds provider state and applies validated transitions.

    Parameters
    ----------
    emit
        Event sink, called as ``emit(event, *args)``.
    request_accounts
        Schedules a non-blocking ``eth_accounts`` refresh flagged as internal.
        Called when the wallet becomes unlocked.
    legacy
        Optional legacy collaborator notified of every selected-address update.
    """

    def __init__(
        self,
        *,
        emit: Emit,
        request_accounts: Callable[[], None] | None = None,
        legacy: LegacyInterop | None = None,
    ) -> None:
        self._emit = emit
        self._request_accounts = request_accounts
        self._legacy = legacy
        self._state = ProviderState()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> ProviderState:
        """Deep copy of the current state."""
        return self._state.model_copy(deep=True)

    @property
    def is_connected(self) -> bool | None:
        """Connectivity flag; ``None`` until first determined."""
        return self._state.is_connected

    @property
    def accounts(self) -> list[str] | None:
        """Copy of the known accounts, or ``None`` before the first sync."""
        accounts = self._state.accounts
        return None if accounts is None else list(accounts)

    @property
    def selected_address(self) -> str | None:
        """Primary account, or ``None`` when no account is exposed."""
        return self._state.selected_address

    @property
    def is_unlocked(self) -> bool:
        """Whether the wallet is unlocked."""
        return self._state.is_unlocked

    @property
    def chain_id(self) -> str | None:
        """Hex chain id, e.g. ``"0x1"``."""
        return self._state.chain_id

    @property
    def network_version(self) -> str | None:
        """Decimal network id string."""
        return self._state.network_version

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def apply_chain_info(self, chain_id: Any, network_version: Any) -> bool:
        """Update chain id and network version as one unit.

        Returns ``True`` when the pair changed and events were emitted.
        """
        if (
            not isinstance(chain_id, str)
            or not chain_id.startswith("0x")
            or not isinstance(network_version, str)
        ):
            _logger.error(
                "Provider: Received invalid network parameters. Please report this bug. %r",
                {"chainId": chain_id, "networkVersion": network_version},
            )
            return False

        state = self._state
        if chain_id == state.chain_id and network_version == state.network_version:
            return False

        state.chain_id = chain_id
        state.network_version = network_version
        self._emit(ProviderEvent.CHAIN_CHANGED, chain_id)
        self._emit(ProviderEvent.CHAIN_ID_CHANGED, chain_id)
        self._emit(ProviderEvent.NETWORK_CHANGED, network_version)
        return True

    def apply_accounts(
        self,
        accounts: Any,
        *,
        from_legacy_accounts_call: bool = False,
        is_internal_refresh: bool = False,
    ) -> bool:
        """Replace the account list, emitting ``accountsChanged`` on a real difference.

        ``selected_address`` is recomputed on every call, changed or not.
        """
        if _is_account_sequence(accounts):
            new_accounts = list(accounts)
        else:
            _logger.error(
                "Provider: Received invalid accounts parameter. Please report this bug. %r",
                accounts,
            )
            new_accounts = []

        state = self._state
        changed = state.accounts != new_accounts
        if changed:
            # eth_accounts should never be the first to learn about a change,
            # unless we asked for it ourselves after an unlock.
            if from_legacy_accounts_call and state.accounts is not None and not is_internal_refresh:
                _logger.error(
                    "Provider: 'eth_accounts' unexpectedly updated accounts. Please report this bug. %r",
                    new_accounts,
                )
            state.accounts = new_accounts

        state.selected_address = (new_accounts[0] if new_accounts else None) or None

        if changed:
            self._emit(ProviderEvent.ACCOUNTS_CHANGED, list(new_accounts))

        if self._legacy is not None:
            try:
                self._legacy.set_default_account(state.selected_address)
            except Exception:
                _logger.debug("Legacy default account update failed", exc_info=True)
        return changed

    def apply_unlock_state(self, is_unlocked: Any) -> bool:
        """Record the wallet lock state.

        Unlocking schedules a best-effort account refresh; locking clears the
        accounts immediately since they are never exposed while locked.
        """
        if not isinstance(is_unlocked, bool):
            _logger.error("Provider: Received invalid isUnlocked parameter. Please report this bug. %r", is_unlocked)
            return False

        if is_unlocked == self._state.is_unlocked:
            return False

        self._state.is_unlocked = is_unlocked
        if is_unlocked:
            if self._request_accounts is not None:
                try:
                    self._request_accounts()
                except Exception:
                    _logger.debug("Account refresh after unlock failed", exc_info=True)
        else:
            self.apply_accounts([])
        return True

    def mark_connected(self) -> None:
        self._state.is_connected = True

    def mark_disconnected(self) -> bool:
        """Set connectivity to ``False``.

        ``disconnect`` (and the deprecated ``close``) are emitted only when
        leaving a connected state.  Returns whether that happened.
        """
        was_connected = self._state.is_connected is True
        self._state.is_connected = False
        if was_connected:
            error = {"code": DISCONNECT_CODE, "reason": DISCONNECT_REASON}
            self._emit(ProviderEvent.DISCONNECT, error)
            self._emit(ProviderEvent.CLOSE, error)
        return was_connected
