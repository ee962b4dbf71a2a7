"""
Converters for DipCoin client.

Decimal <-> wei conversion used by order signing and margin transactions.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Any, Optional

from ...common import DECIMALS


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Convert value to Decimal safely."""
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return default


def to_wei_int(value: Any, decimals: int = DECIMALS["DEFAULT"]) -> int:
    """
    Scale a human-readable amount to integer base units.

    Extra fractional digits are truncated (round down), never rounded up.
    Empty or unparseable input yields 0.
    """
    amount = to_decimal(value)
    if amount is None or not amount.is_finite():
        return 0
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = (amount * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def to_wei(value: Any, decimals: int = DECIMALS["DEFAULT"]) -> str:
    """String form of ``to_wei_int``; "1.5" -> "1500000000000000000"."""
    return str(to_wei_int(value, decimals))


def from_wei(value: Any, decimals: int = DECIMALS["DEFAULT"]) -> str:
    """Scale base units back to a plain decimal string without trailing zeros."""
    amount = to_decimal(value)
    if amount is None or not amount.is_finite():
        return "0"
    with localcontext() as ctx:
        ctx.prec = 80
        result = amount / (Decimal(10) ** decimals)
        if result == 0:
            return "0"
        return format(result.normalize(), "f")
