"""Internal constants shared across the library."""

JSONRPC_VERSION = "2.0"

# ------------------------------------------------------------------
# Backend methods
# ------------------------------------------------------------------

GET_PROVIDER_STATE = "wallet_getProviderState"

NOTIFY_ACCOUNTS_CHANGED = "wallet_accountsChanged"
NOTIFY_UNLOCK_STATE_CHANGED = "wallet_unlockStateChanged"
NOTIFY_CHAIN_CHANGED = "wallet_chainChanged"

ETH_ACCOUNTS = "eth_accounts"
ETH_REQUEST_ACCOUNTS = "eth_requestAccounts"
ETH_COINBASE = "eth_coinbase"
ETH_UNINSTALL_FILTER = "eth_uninstallFilter"
NET_VERSION = "net_version"

ACCOUNT_METHODS: frozenset[str] = frozenset({ETH_ACCOUNTS, ETH_REQUEST_ACCOUNTS})

# Backend-pushed notifications re-emitted verbatim as ``message`` events.
EMITTED_NOTIFICATIONS: frozenset[str] = frozenset({"eth_subscription"})

# ------------------------------------------------------------------
# Transport labels
# ------------------------------------------------------------------

CONNECTION_LABEL = "WalletConnection"
PROVIDER_STREAM_LABEL = "WalletRpcProvider"

# ------------------------------------------------------------------
# Disconnect
# ------------------------------------------------------------------

# WebSocket close code 1011: internal error.
DISCONNECT_CODE = 1011
DISCONNECT_REASON = "Provider: Lost connection to the wallet background process."


def unsupported_sync_message(method: object) -> str:
    return (
        "Provider: The wallet provider does not support synchronous methods like "
        f"{method} without a callback parameter."
    )


def lost_connection_message(label: str) -> str:
    return f'Provider: Lost connection to "{label}".'


# ------------------------------------------------------------------
# Deprecation warnings
# ------------------------------------------------------------------

WARN_ENABLE = (
    "Provider: 'enable()' is deprecated and may be removed in the future. "
    "Please use the 'eth_requestAccounts' RPC method instead."
)
WARN_SEND = (
    "Provider: 'send(...)' is deprecated and may be removed in the future. "
    "Please use 'request(...)' instead."
)
WARN_IS_CONNECTED = (
    "Provider: 'is_connected()' is deprecated and may be removed in the future. "
    "Please listen for the relevant events instead."
)
WARN_EXPERIMENTAL = (
    "Provider: 'provider.experimental' exposes non-standard, experimental methods. "
    "They may be removed or changed without warning."
)
