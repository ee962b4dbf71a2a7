"""
Order serialization for DipCoin.

An order is packed into a fixed 144-byte layout, hashed with sha256, and the
hash is what the trader signs.
"""

import hashlib
import json
from typing import Iterable

from ...models import CanonicalOrder

ORDER_DOMAIN_TAG = b"Bluefin"
SERIALIZED_ORDER_SIZE = 144

# Flag bits (offset 136)
FLAG_IOC = 1
FLAG_POST_ONLY = 2
FLAG_REDUCE_ONLY = 4
FLAG_IS_LONG = 8
FLAG_ORDERBOOK_ONLY = 16


def _address_bytes(value: str) -> bytes:
    text = value[2:] if value.lower().startswith("0x") else value
    if not text or len(text) > 64:
        raise ValueError(f"Invalid object id or address: {value!r}")
    return bytes.fromhex(text.zfill(64))


def _uint(value: int, size: int, field_name: str) -> bytes:
    try:
        return value.to_bytes(size, "big")
    except OverflowError:
        raise ValueError(f"Order {field_name} does not fit in u{size * 8}: {value}") from None


def _order_flags(order: CanonicalOrder) -> int:
    flags = 0
    if order.ioc:
        flags |= FLAG_IOC
    if order.post_only:
        flags |= FLAG_POST_ONLY
    if order.reduce_only:
        flags |= FLAG_REDUCE_ONLY
    if order.is_long:
        flags |= FLAG_IS_LONG
    if order.orderbook_only:
        flags |= FLAG_ORDERBOOK_ONLY
    return flags


def serialize_order(order: CanonicalOrder) -> bytes:
    """
    Pack an order into its signing layout.

    Layout (big-endian):
        price u128 | quantity u128 | leverage u128 | salt u128 |
        expiration u64 | creator 32B | market 32B | flags u8 | domain tag
    """
    buffer = b"".join(
        [
            _uint(order.price, 16, "price"),
            _uint(order.quantity, 16, "quantity"),
            _uint(order.leverage, 16, "leverage"),
            _uint(order.salt, 16, "salt"),
            _uint(order.expiration, 8, "expiration"),
            _address_bytes(order.creator),
            _address_bytes(order.market),
            bytes([_order_flags(order)]),
            ORDER_DOMAIN_TAG,
        ]
    )
    if len(buffer) != SERIALIZED_ORDER_SIZE:
        raise ValueError(f"Serialized order is {len(buffer)} bytes, expected {SERIALIZED_ORDER_SIZE}")
    return buffer


def order_hash(order: CanonicalOrder) -> str:
    return hashlib.sha256(serialize_order(order)).hexdigest()


def _compact_json(payload) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def order_message(order: CanonicalOrder) -> bytes:
    """Bytes signed for an order: ``{"orderHash":"<hex>"}``."""
    return _compact_json({"orderHash": order_hash(order)})


def cancel_message(order_hashes: Iterable[str]) -> bytes:
    """Bytes signed for a cancellation: ``{"orderHashes":[...]}``."""
    return _compact_json({"orderHashes": list(order_hashes)})
