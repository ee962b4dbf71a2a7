"""
Caching utilities for DipCoin client.

Trading pair cache (symbol -> perpetual id) with a time-to-live.
"""

import time
from typing import Callable, Dict, Iterable, List, Optional

from ...common import TRADING_PAIRS_TTL_SECONDS, get_dipcoin_symbol_format
from ...models import TradingPair


class TradingPairsCache:
    """Symbol to perpetual id lookups, refreshed once the TTL has elapsed."""

    def __init__(
        self,
        ttl_seconds: float = TRADING_PAIRS_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._pairs: Dict[str, TradingPair] = {}
        self._loaded_at: Optional[float] = None

    @staticmethod
    def _key(symbol: str) -> str:
        return get_dipcoin_symbol_format(symbol)

    def is_fresh(self) -> bool:
        if self._loaded_at is None:
            return False
        return (self._clock() - self._loaded_at) < self.ttl_seconds

    def update(self, pairs: Iterable[TradingPair]) -> None:
        self._pairs = {self._key(pair.symbol): pair for pair in pairs if pair.symbol}
        self._loaded_at = self._clock()

    def pairs(self) -> List[TradingPair]:
        return list(self._pairs.values())

    def get(self, symbol: str) -> Optional[TradingPair]:
        if not symbol:
            return None
        return self._pairs.get(self._key(symbol))

    def get_perp_id(self, symbol: str) -> Optional[str]:
        pair = self.get(symbol)
        if pair is None or not pair.perp_id:
            return None
        return pair.perp_id

    def invalidate(self) -> None:
        self._loaded_at = None
