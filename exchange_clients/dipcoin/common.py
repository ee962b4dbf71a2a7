"""
Common constants and symbol helpers for the DipCoin exchange.

Shared by the trading client, the margin builder and the tests.
"""

API_ENDPOINTS = {
    "AUTHORIZE": "/api/authorize",
    "PLACE_ORDER": "/api/perp-trade-api/trade/placeorder",
    "CANCEL_ORDER": "/api/perp-trade-api/trade/cancelorder",
    "PLACE_TPSL": "/api/perp-trade-api/trade/planorder",
    "CANCEL_TPSL": "/api/perp-trade-api/trade/cancelplanorder",
    "ADJUST_LEVERAGE": "/api/perp-trade-api/trade/adjustleverage",
    "GET_ACCOUNT_INFO": "/api/perp-trade-api/curr-info/account",
    "GET_POSITIONS": "/api/perp-trade-api/curr-info/positions",
    "GET_OPEN_ORDERS": "/api/perp-trade-api/curr-info/orders",
    "GET_POSITION_TPSL": "/api/perp-trade-api/curr-info/planorders",
    "GET_USER_CONFIG": "/api/perp-trade-api/curr-info/userconfig",
    "HISTORY_ORDERS": "/api/perp-trade-api/history/orders",
    "FUNDING_SETTLEMENTS": "/api/perp-trade-api/history/funding-settlements",
    "BALANCE_CHANGES": "/api/perp-trade-api/history/balance-changes",
    "GET_TRADING_PAIRS": "/api/perp-market-api/list",
    "ORACLE": "/api/perp-market-api/oracle",
}

# Signed once per session to obtain a bearer token.
ONBOARDING_MESSAGE = '{"onboardingUrl":"dipcoin.io"}'

# Response codes
SUCCESS_CODE = 200
SESSION_EXPIRED_CODE = 1000

DECIMALS = {
    "USDC": 6,
    "SUI": 9,
    "DEFAULT": 18,
}

# Oracle price older than this (on-chain clock vs arrival time) gets refreshed.
PRICE_STALE_SECONDS = 5

TRADING_PAIRS_TTL_SECONDS = 60

SUI_CLOCK_OBJECT_ID = "0x6"

NETWORK_DEFAULTS = {
    "mainnet": {
        "rpc_url": "https://fullnode.mainnet.sui.io:443",
        "price_service_url": "https://hermes.pyth.network",
    },
    "testnet": {
        "rpc_url": "https://fullnode.testnet.sui.io:443",
        "price_service_url": "https://hermes-beta.pyth.network",
    },
}


def normalize_symbol(symbol: str) -> str:
    """
    Normalize DipCoin symbol format to the bare base asset.

    - "BTC-PERP" -> "BTC"
    - "eth-perp" -> "ETH"
    """
    normalized = symbol.upper().strip()
    normalized = normalized.replace("-PERP", "").replace("-USDC", "")
    return normalized.strip("-_/")


def get_dipcoin_symbol_format(normalized_symbol: str) -> str:
    """Convert a bare base asset ("BTC") back to DipCoin format ("BTC-PERP")."""
    symbol = normalized_symbol.upper().strip()
    if symbol.endswith("-PERP"):
        return symbol
    return f"{symbol}-PERP"
