"""
Data structures for DipCoin orders, sessions and account data.

Human-facing values (quantity, price, leverage) stay as the caller passed
them; the canonical order carries integer wei values; the signed request
serializes wei strings field by field into the wire payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class MarginDirection(str, Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass
class TpSlConfig:
    """Take-profit or stop-loss leg attached to an order or a position."""

    trigger_price: Any
    order_type: OrderType = OrderType.MARKET
    order_price: Any = None
    tpsl_type: str = "position"
    # Set when editing an existing plan order.
    plan_id: Optional[str] = None


@dataclass
class PlaceOrderRequest:
    """Trade intent accepted by ``DipCoinClient.place_order``."""

    symbol: str
    side: OrderSide
    order_type: OrderType
    quantity: Any
    leverage: Any
    market: Optional[str] = None
    price: Any = None
    reduce_only: bool = False
    client_id: str = ""
    creator: Optional[str] = None
    tp: Optional[TpSlConfig] = None
    sl: Optional[TpSlConfig] = None


@dataclass
class PositionTpSlRequest:
    """
    Standalone TP/SL orders for an open position.

    ``side`` and ``is_long`` describe the closing order, e.g. SELL/False to
    close a long position.
    """

    symbol: str
    market: str
    side: OrderSide
    is_long: bool
    quantity: Any
    leverage: Any
    tp: Optional[TpSlConfig] = None
    sl: Optional[TpSlConfig] = None
    creator: Optional[str] = None


@dataclass(frozen=True)
class CanonicalOrder:
    """The exact order representation that is serialized and signed."""

    market: str
    creator: str
    is_long: bool
    reduce_only: bool
    post_only: bool
    orderbook_only: bool
    ioc: bool
    quantity: int
    price: int
    leverage: int
    expiration: int
    salt: int


@dataclass(frozen=True)
class SignedOrder:
    order: CanonicalOrder
    signature: str


@dataclass(frozen=True)
class SignedTpSlLeg:
    """A signed closing order plus the wire values describing its trigger."""

    signed: SignedOrder
    order_type: OrderType
    trigger_price: str
    order_price: str
    tpsl_type: str = "position"
    plan_id: Optional[str] = None

    @property
    def salt(self) -> int:
        return self.signed.order.salt


@dataclass
class SignedOrderRequest:
    """Signed order bundle ready for submission."""

    symbol: str
    side: OrderSide
    order_type: OrderType
    quantity: str
    price: str
    leverage: str
    creator: str
    client_id: str
    reduce_only: bool
    main: SignedOrder
    tp: Optional[SignedTpSlLeg] = None
    sl: Optional[SignedTpSlLeg] = None

    @property
    def salt(self) -> int:
        return self.main.order.salt

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "symbol": self.symbol,
            "side": self.side.value,
            "orderType": self.order_type.value,
            "quantity": self.quantity,
            "price": self.price,
            "leverage": self.leverage,
            "salt": str(self.salt),
            "creator": self.creator,
            "clientId": self.client_id,
            "reduceOnly": self.reduce_only,
            "orderSignature": self.main.signature,
        }
        if self.tp is not None:
            payload["tpOrderSignature"] = self.tp.signed.signature
            payload["tpTriggerPrice"] = self.tp.trigger_price
            payload["tpOrderType"] = self.tp.order_type.value
            payload["tpOrderPrice"] = self.tp.order_price
            payload["tpSalt"] = str(self.tp.salt)
        if self.sl is not None:
            payload["slOrderSignature"] = self.sl.signed.signature
            payload["slTriggerPrice"] = self.sl.trigger_price
            payload["slOrderType"] = self.sl.order_type.value
            payload["slOrderPrice"] = self.sl.order_price
            payload["slSalt"] = str(self.sl.salt)
        if self.tp is not None or self.sl is not None:
            payload["triggerWay"] = "oracle"
        return payload


@dataclass
class SignedPositionTpSlRequest:
    """Signed TP/SL bundle for an existing position."""

    symbol: str
    side: OrderSide
    is_long: bool
    quantity: str
    leverage: str
    creator: str
    tp: Optional[SignedTpSlLeg] = None
    sl: Optional[SignedTpSlLeg] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "symbol": self.symbol,
            "side": self.side.value,
            "isLong": self.is_long,
            "quantity": self.quantity,
            "leverage": self.leverage,
            "creator": self.creator,
            "triggerWay": "oracle",
        }
        for prefix, leg in (("tp", self.tp), ("sl", self.sl)):
            if leg is None:
                continue
            payload[f"{prefix}OrderSignature"] = leg.signed.signature
            payload[f"{prefix}TriggerPrice"] = leg.trigger_price
            payload[f"{prefix}OrderType"] = leg.order_type.value
            payload[f"{prefix}OrderPrice"] = leg.order_price
            payload[f"{prefix}Salt"] = str(leg.salt)
            payload[f"{prefix}TpslType"] = leg.tpsl_type
            if leg.plan_id:
                payload[f"{prefix}PlanId"] = leg.plan_id
        return payload


@dataclass
class TradingPair:
    symbol: str
    perp_id: str
    coin_name: Optional[str] = None
    max_leverage: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "TradingPair":
        if not isinstance(data, dict):
            data = {}
        return cls(
            symbol=data.get("symbol", ""),
            perp_id=data.get("perpId", ""),
            coin_name=data.get("coinName"),
            max_leverage=data.get("maxLeverage"),
            raw=dict(data),
        )


@dataclass
class AccountInfo:
    wallet_balance: str = "0"
    total_unrealized_profit: str = "0"
    account_value: str = "0"
    free_collateral: str = "0"
    total_margin: str = "0"

    @classmethod
    def from_dict(cls, data: Any) -> "AccountInfo":
        if not isinstance(data, dict):
            data = {}
        return cls(
            wallet_balance=data.get("walletBalance") or "0",
            total_unrealized_profit=data.get("totalUnrealizedProfit") or "0",
            account_value=data.get("accountValue") or "0",
            free_collateral=data.get("freeCollateral") or "0",
            total_margin=data.get("totalMargin") or "0",
        )


@dataclass
class CoinBalance:
    """Wallet holding of one coin type, with display metadata when the chain has it."""

    coin_type: str
    total_balance: str = "0"
    coin_object_count: int = 0
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    # total_balance scaled by decimals
    balance: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "CoinBalance":
        if not isinstance(data, dict):
            data = {}
        return cls(
            coin_type=data.get("coinType", ""),
            total_balance=str(data.get("totalBalance") or "0"),
            coin_object_count=int(data.get("coinObjectCount") or 0),
        )


@dataclass
class MarginAdjustment:
    """Collateral move for an isolated position."""

    amount: Any
    direction: MarginDirection = MarginDirection.ADD
    account: Optional[str] = None
    symbol: Optional[str] = None
    perp_id: Optional[str] = None
    gas_budget: Optional[int] = None


@dataclass
class PageParams:
    """Optional filters shared by the paginated history endpoints."""

    symbol: Optional[str] = None
    page: Optional[int] = None
    page_size: Optional[int] = None
    parent_address: Optional[str] = None
    begin_time: Optional[int] = None
    end_time: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_query(self) -> Dict[str, Any]:
        query = {
            "symbol": self.symbol,
            "page": self.page,
            "pageSize": self.page_size,
            "parentAddress": self.parent_address,
            "beginTime": self.begin_time,
            "endTime": self.end_time,
        }
        query.update(self.extra)
        return {k: v for k, v in query.items() if v not in (None, "")}


def as_list(data: Any) -> List[Any]:
    """Accept either a bare list or a ``{"data": [...]}`` page."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        return data["data"]
    return []
