from __future__ import annotations

import logging
from typing import Any

import pytest

from pyinpage.state.store import StateStore


class _Sink:
    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []
        self.resyncs = 0

    def emit(self, event: str, *args: Any) -> bool:
        self.events.append((str(event), args))
        return True

    def request_accounts(self) -> None:
        self.resyncs += 1

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


class _Legacy:
    def __init__(self) -> None:
        self.defaults: list[str | None] = []

    def set_default_account(self, address: str | None) -> None:
        self.defaults.append(address)


def _store(sink: _Sink, **kwargs: Any) -> StateStore:
    return StateStore(emit=sink.emit, request_accounts=sink.request_accounts, **kwargs)


def test_initial_state_is_unsynced() -> None:
    store = _store(_Sink())
    state = store.state
    assert state.is_connected is None
    assert state.accounts is None
    assert state.selected_address is None
    assert state.is_unlocked is False
    assert state.chain_id is None
    assert state.network_version is None


def test_chain_info_emits_in_order_once() -> None:
    sink = _Sink()
    store = _store(sink)

    assert store.apply_chain_info("0x1", "1") is True
    assert store.apply_chain_info("0x1", "1") is False

    assert sink.events == [
        ("chainChanged", ("0x1",)),
        ("chainIdChanged", ("0x1",)),
        ("networkChanged", ("1",)),
    ]
    assert store.chain_id == "0x1"
    assert store.network_version == "1"


def test_chain_info_changes_when_only_network_version_differs() -> None:
    sink = _Sink()
    store = _store(sink)
    store.apply_chain_info("0x1", "1")
    sink.events.clear()

    assert store.apply_chain_info("0x1", "5") is True
    assert sink.names() == ["chainChanged", "chainIdChanged", "networkChanged"]
    assert store.network_version == "5"


@pytest.mark.parametrize(
    ("chain_id", "network_version"),
    [
        ("1", "1"),
        ("", "1"),
        (None, "1"),
        (1, "1"),
        ("0x1", 1),
        ("0x1", None),
    ],
)
def test_invalid_chain_info_is_logged_and_discarded(
    chain_id: Any, network_version: Any, caplog: pytest.LogCaptureFixture
) -> None:
    sink = _Sink()
    store = _store(sink)
    store.apply_chain_info("0x5", "5")
    sink.events.clear()

    with caplog.at_level(logging.ERROR, logger="pyinpage.state.store"):
        assert store.apply_chain_info(chain_id, network_version) is False

    assert sink.events == []
    assert store.chain_id == "0x5"
    assert store.network_version == "5"
    assert "invalid network parameters" in caplog.text


def test_accounts_deep_equality_suppresses_duplicate_events() -> None:
    sink = _Sink()
    store = _store(sink)

    store.apply_accounts(["0xa", "0xb"])
    store.apply_accounts(["0xa", "0xb"])
    store.apply_accounts(("0xa", "0xb"))

    assert sink.events == [("accountsChanged", (["0xa", "0xb"],))]
    assert store.selected_address == "0xa"


def test_accounts_order_matters() -> None:
    sink = _Sink()
    store = _store(sink)

    store.apply_accounts(["0xa", "0xb"])
    store.apply_accounts(["0xb", "0xa"])

    assert len(sink.events) == 2
    assert store.selected_address == "0xb"


def test_first_empty_accounts_update_is_a_change() -> None:
    sink = _Sink()
    store = _store(sink)

    assert store.apply_accounts([]) is True
    assert sink.events == [("accountsChanged", ([],))]
    assert store.accounts == []
    assert store.selected_address is None


def test_stored_accounts_are_not_aliased_to_the_input() -> None:
    store = _store(_Sink())
    incoming = ["0xa"]
    store.apply_accounts(incoming)
    incoming.append("0xb")

    assert store.accounts == ["0xa"]


def test_invalid_accounts_become_empty(caplog: pytest.LogCaptureFixture) -> None:
    sink = _Sink()
    store = _store(sink)
    store.apply_accounts(["0xa"])
    sink.events.clear()

    with caplog.at_level(logging.ERROR, logger="pyinpage.state.store"):
        store.apply_accounts("0xa")

    assert "invalid accounts parameter" in caplog.text
    assert store.accounts == []
    assert store.selected_address is None
    assert sink.events == [("accountsChanged", ([],))]


def test_eth_accounts_anomaly_is_logged_but_applied(caplog: pytest.LogCaptureFixture) -> None:
    sink = _Sink()
    store = _store(sink)
    store.apply_accounts(["0xa"])

    with caplog.at_level(logging.ERROR, logger="pyinpage.state.store"):
        store.apply_accounts(["0xb"], from_legacy_accounts_call=True)

    assert "unexpectedly updated accounts" in caplog.text
    assert store.selected_address == "0xb"


@pytest.mark.parametrize(
    ("initial", "internal"),
    [
        (None, False),
        (["0xa"], True),
    ],
)
def test_eth_accounts_anomaly_not_logged_when_expected(
    initial: list[str] | None, internal: bool, caplog: pytest.LogCaptureFixture
) -> None:
    store = _store(_Sink())
    if initial is not None:
        store.apply_accounts(initial)

    with caplog.at_level(logging.ERROR, logger="pyinpage.state.store"):
        store.apply_accounts(["0xb"], from_legacy_accounts_call=True, is_internal_refresh=internal)

    assert "unexpectedly" not in caplog.text
    assert store.accounts == ["0xb"]


def test_empty_first_account_gives_no_selected_address() -> None:
    store = _store(_Sink())
    store.apply_accounts(["", "0xb"])
    assert store.selected_address is None


def test_unlock_schedules_resync_and_lock_clears_accounts() -> None:
    sink = _Sink()
    store = _store(sink)
    store.apply_accounts(["0xa"])
    sink.events.clear()

    assert store.apply_unlock_state(True) is True
    assert sink.resyncs == 1
    assert sink.events == []

    assert store.apply_unlock_state(True) is False
    assert sink.resyncs == 1

    assert store.apply_unlock_state(False) is True
    assert store.accounts == []
    assert store.selected_address is None
    assert sink.events == [("accountsChanged", ([],))]


def test_lock_without_accounts_change_emits_nothing() -> None:
    sink = _Sink()
    store = _store(sink)
    store.apply_unlock_state(True)
    store.apply_accounts([])
    sink.events.clear()

    store.apply_unlock_state(False)

    assert sink.events == []
    assert store.is_unlocked is False


def test_invalid_unlock_state_is_discarded(caplog: pytest.LogCaptureFixture) -> None:
    sink = _Sink()
    store = _store(sink)

    with caplog.at_level(logging.ERROR, logger="pyinpage.state.store"):
        assert store.apply_unlock_state("true") is False
        assert store.apply_unlock_state(1) is False

    assert store.is_unlocked is False
    assert sink.resyncs == 0
    assert "invalid isUnlocked parameter" in caplog.text


def test_resync_failure_is_swallowed() -> None:
    def _boom() -> None:
        raise RuntimeError("no loop")

    store = StateStore(emit=_Sink().emit, request_accounts=_boom)
    assert store.apply_unlock_state(True) is True
    assert store.is_unlocked is True


def test_disconnect_emits_only_from_connected_state() -> None:
    sink = _Sink()
    store = _store(sink)

    assert store.mark_disconnected() is False
    assert sink.events == []
    assert store.is_connected is False

    store.mark_connected()
    assert store.mark_disconnected() is True
    assert store.mark_disconnected() is False

    assert sink.names() == ["disconnect", "close"]
    payload = sink.events[0][1][0]
    assert payload["code"] == 1011
    assert payload["reason"]


def test_legacy_collaborator_receives_selected_address() -> None:
    legacy = _Legacy()
    store = _store(_Sink(), legacy=legacy)

    store.apply_accounts(["0xa"])
    store.apply_accounts([])

    assert legacy.defaults == ["0xa", None]


def test_state_snapshot_is_a_copy() -> None:
    store = _store(_Sink())
    store.apply_accounts(["0xa"])

    snapshot = store.state
    assert snapshot.accounts is not None
    snapshot.accounts.append("0xb")

    assert store.accounts == ["0xa"]
