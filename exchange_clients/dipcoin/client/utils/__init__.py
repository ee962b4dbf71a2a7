"""Utility modules for DipCoin client."""

from .caching import TradingPairsCache
from .converters import from_wei, to_decimal, to_wei, to_wei_int
from .order_encoding import cancel_message, order_hash, order_message, serialize_order
from .signing import MessageSigner, SignerTypes, SuiIdentity, build_signature

__all__ = [
    "TradingPairsCache",
    "from_wei",
    "to_decimal",
    "to_wei",
    "to_wei_int",
    "cancel_message",
    "order_hash",
    "order_message",
    "serialize_order",
    "MessageSigner",
    "SignerTypes",
    "SuiIdentity",
    "build_signature",
]
