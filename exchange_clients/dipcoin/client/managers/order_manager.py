"""
Order manager module for DipCoin client.

Builds and signs canonical orders (main, take-profit, stop-loss) and submits
order placement, cancellation and plan-order requests.
"""

import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from exchange_clients.base_models import SDKResponse
from helpers.unified_logger import short_id

from ...common import API_ENDPOINTS
from ...exceptions import MissingMarketIdError, MissingOrderFieldError
from ...models import (
    CanonicalOrder,
    OrderSide,
    OrderType,
    PlaceOrderRequest,
    PositionTpSlRequest,
    SignedOrder,
    SignedOrderRequest,
    SignedPositionTpSlRequest,
    SignedTpSlLeg,
    TpSlConfig,
    as_list,
)
from ..utils.converters import to_wei, to_wei_int
from ..utils.order_encoding import cancel_message, order_hash, order_message
from ..utils.signing import MessageSigner
from .key_manager import KeyManager
from .submission import AuthenticatedRequest, SubmissionPipeline


def _coerce_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    if not value:
        raise MissingOrderFieldError(field_name)
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        raise MissingOrderFieldError(field_name, f"Invalid {field_name}: {value}") from None


class OrderBuilder:
    """
    Turns trade intents into signed canonical orders.

    Orders belong to the main account (the default creator, and the
    parentAddress of cancels) and are signed by the trading identity.
    Salts come from the wall clock: main = now_ms, TP = main + 1,
    SL = main + 2.
    """

    def __init__(
        self,
        key_manager: KeyManager,
        signer: MessageSigner,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.keys = key_manager
        self.signer = signer
        self._clock = clock or time.time

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ========================================================================
    # VALIDATION
    # ========================================================================

    @staticmethod
    def _positive_wei(value: Any, field_name: str) -> int:
        if value is None or value == "":
            raise MissingOrderFieldError(field_name)
        wei = to_wei_int(value)
        if wei <= 0:
            raise MissingOrderFieldError(field_name, f"{field_name} must be greater than 0: {value}")
        return wei

    # ========================================================================
    # SIGNING
    # ========================================================================

    def sign_order(self, order: CanonicalOrder) -> SignedOrder:
        signature = self.signer.sign(self.keys.signing_identity(), order_message(order))
        return SignedOrder(order=order, signature=signature)

    def sign_cancel(self, order_hashes: Sequence[str]) -> str:
        return self.signer.sign(self.keys.signing_identity(), cancel_message(order_hashes))

    def _closing_leg(
        self,
        config: TpSlConfig,
        *,
        market: str,
        creator: str,
        is_long: bool,
        quantity: int,
        leverage: int,
        salt: int,
        leg_name: str,
    ) -> SignedTpSlLeg:
        order_type = _coerce_enum(OrderType, config.order_type, f"{leg_name} order type")
        if order_type == OrderType.LIMIT:
            price_input = config.order_price or config.trigger_price
        else:
            price_input = ""

        order = CanonicalOrder(
            market=market,
            creator=creator,
            is_long=is_long,
            reduce_only=True,
            post_only=False,
            orderbook_only=True,
            ioc=False,
            quantity=quantity,
            price=to_wei_int(price_input),
            leverage=leverage,
            expiration=0,
            salt=salt,
        )
        return SignedTpSlLeg(
            signed=self.sign_order(order),
            order_type=order_type,
            trigger_price=to_wei(config.trigger_price),
            order_price=to_wei(price_input),
            tpsl_type=config.tpsl_type,
            plan_id=config.plan_id,
        )

    # ========================================================================
    # BUILDERS
    # ========================================================================

    def build(self, request: PlaceOrderRequest) -> SignedOrderRequest:
        """Validate an intent and sign the main order plus any TP/SL legs."""
        if not request.symbol:
            raise MissingOrderFieldError("symbol")
        side = _coerce_enum(OrderSide, request.side, "side")
        order_type = _coerce_enum(OrderType, request.order_type, "orderType")
        quantity = self._positive_wei(request.quantity, "quantity")
        leverage = self._positive_wei(request.leverage, "leverage")

        if order_type == OrderType.LIMIT:
            price = self._positive_wei(request.price, "price")
        else:
            price = 0

        if not request.market:
            raise MissingMarketIdError()

        creator = request.creator or self.keys.address
        salt = self.now_ms()
        is_long = side == OrderSide.BUY

        main = CanonicalOrder(
            market=request.market,
            creator=creator,
            is_long=is_long,
            reduce_only=bool(request.reduce_only),
            post_only=False,
            orderbook_only=True,
            ioc=False,
            quantity=quantity,
            price=price,
            leverage=leverage,
            expiration=0,
            salt=salt,
        )

        leg_args = dict(
            market=request.market,
            creator=creator,
            is_long=not is_long,
            quantity=quantity,
            leverage=leverage,
        )
        tp = sl = None
        if request.tp is not None and request.tp.trigger_price:
            tp = self._closing_leg(request.tp, salt=salt + 1, leg_name="tp", **leg_args)
        if request.sl is not None and request.sl.trigger_price:
            sl = self._closing_leg(request.sl, salt=salt + 2, leg_name="sl", **leg_args)

        return SignedOrderRequest(
            symbol=request.symbol,
            side=side,
            order_type=order_type,
            quantity=to_wei(request.quantity),
            # The server expects the caller's price even on MARKET orders.
            price=to_wei(request.price or ""),
            leverage=to_wei(request.leverage),
            creator=creator,
            client_id=request.client_id or "",
            reduce_only=bool(request.reduce_only),
            main=self.sign_order(main),
            tp=tp,
            sl=sl,
        )

    def build_position_tpsl(self, request: PositionTpSlRequest) -> SignedPositionTpSlRequest:
        """Sign standalone closing orders for an open position."""
        if not request.symbol:
            raise MissingOrderFieldError("symbol")
        side = _coerce_enum(OrderSide, request.side, "side")
        quantity = self._positive_wei(request.quantity, "quantity")
        leverage = self._positive_wei(request.leverage, "leverage")
        if not request.market:
            raise MissingMarketIdError()
        if request.tp is None and request.sl is None:
            raise MissingOrderFieldError("tp/sl", "At least one of tp or sl is required")

        creator = request.creator or self.keys.address
        salt = self.now_ms()
        leg_args = dict(
            market=request.market,
            creator=creator,
            is_long=bool(request.is_long),
            quantity=quantity,
            leverage=leverage,
        )
        tp = sl = None
        if request.tp is not None:
            if not request.tp.trigger_price:
                raise MissingOrderFieldError("tp trigger price")
            tp = self._closing_leg(request.tp, salt=salt + 1, leg_name="tp", **leg_args)
        if request.sl is not None:
            if not request.sl.trigger_price:
                raise MissingOrderFieldError("sl trigger price")
            sl = self._closing_leg(request.sl, salt=salt + 2, leg_name="sl", **leg_args)

        return SignedPositionTpSlRequest(
            symbol=request.symbol,
            side=side,
            is_long=bool(request.is_long),
            quantity=to_wei(request.quantity),
            leverage=to_wei(request.leverage),
            creator=creator,
            tp=tp,
            sl=sl,
        )


class DipCoinOrderManager:
    """
    Order manager for DipCoin exchange.

    Handles:
    - Order placement (with optional attached TP/SL)
    - Order cancellation
    - Position TP/SL placement, edit, listing and cancellation
    """

    def __init__(
        self,
        builder: OrderBuilder,
        pipeline: SubmissionPipeline,
        key_manager: KeyManager,
        logger: Any,
    ):
        self.builder = builder
        self.pipeline = pipeline
        self.keys = key_manager
        self.logger = logger

    async def place_order(self, request: PlaceOrderRequest) -> SDKResponse:
        signed = self.builder.build(request)
        self.logger.info(
            f"[DIPCOIN] Placing {signed.order_type.value} {signed.side.value} {request.quantity} "
            f"{request.symbol} hash={short_id(order_hash(signed.main.order))}"
        )
        return await self.pipeline.submit(
            AuthenticatedRequest("POST", API_ENDPOINTS["PLACE_ORDER"], body=signed.to_payload(), trading_scoped=True),
            default_error="Order failed",
        )

    async def cancel_order(
        self,
        symbol: str,
        order_hashes: List[str],
        parent_address: Optional[str] = None,
    ) -> SDKResponse:
        if not order_hashes:
            raise MissingOrderFieldError("orderHashes", "Order hashes are required")
        body = {
            "symbol": symbol,
            "orderHashes": list(order_hashes),
            "signature": self.builder.sign_cancel(order_hashes),
            "parentAddress": parent_address or self.keys.address,
        }
        self.logger.info(f"[DIPCOIN] Cancelling {len(order_hashes)} order(s) on {symbol}")
        return await self.pipeline.submit(
            AuthenticatedRequest("POST", API_ENDPOINTS["CANCEL_ORDER"], body=body, trading_scoped=True),
            default_error="Cancel order failed",
        )

    async def place_position_tpsl(self, request: PositionTpSlRequest) -> SDKResponse:
        signed = self.builder.build_position_tpsl(request)
        self.logger.info(f"[DIPCOIN] Placing position TP/SL on {request.symbol}")
        return await self.pipeline.submit(
            AuthenticatedRequest("POST", API_ENDPOINTS["PLACE_TPSL"], body=signed.to_payload(), trading_scoped=True),
            default_error="Failed to place TP/SL orders",
        )

    async def cancel_tpsl_orders(
        self,
        symbol: str,
        plan_ids: List[str],
        parent_address: Optional[str] = None,
    ) -> SDKResponse:
        if not plan_ids:
            raise MissingOrderFieldError("planIds", "Plan order ids are required")
        body: Dict[str, Any] = {
            "symbol": symbol,
            "planIds": list(plan_ids),
            "parentAddress": parent_address or self.keys.address,
        }
        return await self.pipeline.submit(
            AuthenticatedRequest("POST", API_ENDPOINTS["CANCEL_TPSL"], body=body, trading_scoped=True),
            default_error="Failed to cancel TP/SL orders",
        )

    async def get_position_tpsl(self, position_id: str, tpsl_type: Optional[str] = None) -> SDKResponse:
        params = {"positionId": position_id, "tpslType": tpsl_type}
        return await self.pipeline.submit(
            AuthenticatedRequest("GET", API_ENDPOINTS["GET_POSITION_TPSL"], params=params),
            normalize=as_list,
            default_error="Failed to get TP/SL orders",
        )
