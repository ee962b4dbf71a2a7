"""
Account manager module for DipCoin client.

Handles account, position, order history and market reads, all of which go
through the authenticated submission pipeline.
"""

from typing import Any, Dict, Optional, Union

from exchange_clients.base_models import SDKResponse

from ...common import API_ENDPOINTS
from ...models import AccountInfo, PageParams, TradingPair, as_list
from ..utils.caching import TradingPairsCache
from ..utils.converters import to_wei, to_wei_int
from .submission import AuthenticatedRequest, SubmissionPipeline

QueryInput = Union[None, str, PageParams, Dict[str, Any]]


def _to_query(params: QueryInput) -> Dict[str, Any]:
    """Accept a bare symbol, a PageParams or a dict; drop empty values."""
    if params is None:
        return {}
    if isinstance(params, str):
        return {"symbol": params} if params else {}
    if isinstance(params, PageParams):
        return params.to_query()
    return {k: v for k, v in params.items() if v not in (None, "")}


def _page(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict):
        page = dict(data)
        page.setdefault("data", [])
        return page
    return {"data": as_list(data), "total": len(as_list(data))}


class DipCoinAccountManager:
    """
    Account manager for DipCoin exchange.

    Handles:
    - Account summary, positions and open orders
    - Order, funding and balance history pages
    - Trading pairs (cached symbol -> perpetual id), oracle price
    - User config and leverage adjustment
    """

    def __init__(
        self,
        pipeline: SubmissionPipeline,
        trading_pairs: TradingPairsCache,
        logger: Any,
    ):
        self.pipeline = pipeline
        self.trading_pairs = trading_pairs
        self.logger = logger

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> SDKResponse:
        return await self.pipeline.submit(AuthenticatedRequest("GET", path, params=params), **kwargs)

    # ========================================================================
    # ACCOUNT STATE
    # ========================================================================

    async def get_account_info(self, parent_address: Optional[str] = None) -> SDKResponse:
        params = {"parentAddress": parent_address} if parent_address else None
        return await self._get(
            API_ENDPOINTS["GET_ACCOUNT_INFO"],
            params,
            normalize=AccountInfo.from_dict,
            default_error="Failed to get account info",
        )

    async def get_positions(self, params: QueryInput = None) -> SDKResponse:
        return await self._get(
            API_ENDPOINTS["GET_POSITIONS"],
            _to_query(params),
            normalize=as_list,
            default_error="Failed to get positions",
        )

    async def get_open_orders(self, params: QueryInput = None) -> SDKResponse:
        return await self._get(
            API_ENDPOINTS["GET_OPEN_ORDERS"],
            _to_query(params),
            normalize=as_list,
            default_error="Failed to get open orders",
        )

    # ========================================================================
    # HISTORY
    # ========================================================================

    async def get_history_orders(self, params: QueryInput = None) -> SDKResponse:
        return await self._get(
            API_ENDPOINTS["HISTORY_ORDERS"],
            _to_query(params),
            normalize=_page,
            default_error="Failed to get history orders",
        )

    async def get_funding_settlements(self, params: QueryInput = None) -> SDKResponse:
        return await self._get(
            API_ENDPOINTS["FUNDING_SETTLEMENTS"],
            _to_query(params),
            normalize=_page,
            default_error="Failed to get funding settlements",
        )

    async def get_balance_changes(self, params: QueryInput = None) -> SDKResponse:
        return await self._get(
            API_ENDPOINTS["BALANCE_CHANGES"],
            _to_query(params),
            normalize=_page,
            default_error="Failed to get balance changes",
        )

    # ========================================================================
    # MARKETS
    # ========================================================================

    async def get_trading_pairs(self) -> SDKResponse:
        result = await self._get(
            API_ENDPOINTS["GET_TRADING_PAIRS"],
            normalize=lambda data: [TradingPair.from_dict(item) for item in as_list(data) if isinstance(item, dict)],
            default_error="Failed to get trading pairs",
        )
        if result.status:
            self.trading_pairs.update(result.data)
        return result

    async def get_perpetual_id(self, symbol: str) -> Optional[str]:
        """Resolve a symbol to its perpetual id, refreshing the cache when stale."""
        if not symbol:
            return None
        if self.trading_pairs.is_fresh():
            perp_id = self.trading_pairs.get_perp_id(symbol)
            if perp_id:
                return perp_id

        result = await self.get_trading_pairs()
        if not result.status:
            self.logger.warning(f"[DIPCOIN] Could not load trading pairs: {result.error}")
            return None
        return self.trading_pairs.get_perp_id(symbol)

    async def get_oracle_price(self, symbol: str) -> SDKResponse:
        if not symbol:
            return SDKResponse.fail("Symbol is required")
        return await self._get(
            API_ENDPOINTS["ORACLE"],
            {"symbol": symbol},
            default_error="Failed to get oracle price",
        )

    # ========================================================================
    # LEVERAGE
    # ========================================================================

    async def get_user_config(self, symbol: str, parent_address: Optional[str] = None) -> SDKResponse:
        if not symbol:
            return SDKResponse.fail("Symbol is required")
        return await self._get(
            API_ENDPOINTS["GET_USER_CONFIG"],
            _to_query({"symbol": symbol, "parentAddress": parent_address}),
            default_error="Failed to get user config",
        )

    async def adjust_leverage(
        self,
        symbol: str,
        leverage: Any,
        margin_type: str = "ISOLATED",
        parent_address: Optional[str] = None,
    ) -> SDKResponse:
        if not symbol:
            return SDKResponse.fail("Symbol is required")
        if to_wei_int(leverage) <= 0:
            return SDKResponse.fail("Leverage must be greater than 0")
        body: Dict[str, Any] = {
            "symbol": symbol,
            "leverage": to_wei(leverage),
            "marginType": margin_type,
        }
        if parent_address:
            body["parentAddress"] = parent_address
        self.logger.info(f"[DIPCOIN] Adjusting leverage on {symbol} to {leverage}x ({margin_type})")
        return await self.pipeline.submit(
            AuthenticatedRequest("POST", API_ENDPOINTS["ADJUST_LEVERAGE"], body=body, trading_scoped=True),
            default_error="Failed to adjust leverage",
        )