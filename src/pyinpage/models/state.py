"""Provider state models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProviderState(BaseModel):
    """Authoritative provider state.

    Mutated only by :class:`pyinpage.state.store.StateStore`.  Assignment is
    not validated: the store validates backend data itself and logs rather
    than raises.
    """

    model_config = ConfigDict(extra="forbid")

    is_connected: bool | None = None
    """``None`` until connectivity is first determined."""

    accounts: list[str] | None = None
    """``None`` until the first successful sync; index 0 is the primary account."""

    selected_address: str | None = None
    """Always ``accounts[0]`` when present, else ``None``."""

    is_unlocked: bool = False
    chain_id: str | None = None
    network_version: str | None = None


class ProviderStateSnapshot(BaseModel):
    """Result of ``wallet_getProviderState``.

    Fields are untyped: the store validates each one independently, and one
    malformed value never rejects the others.
    A result that is not an object fails validation.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    chain_id: Any = Field(default=None, alias="chainId")
    network_version: Any = Field(default=None, alias="networkVersion")
    is_unlocked: Any = Field(default=None, alias="isUnlocked")
    accounts: Any = None
