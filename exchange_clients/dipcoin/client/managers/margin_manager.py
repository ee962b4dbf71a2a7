"""
Margin manager module for DipCoin client.

Composes isolated-margin transactions: resolve the market, refresh the
oracle price when needed, then add or remove margin. Also moves USDC in and
out of the exchange bank.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from exchange_clients.base_models import SDKResponse, format_error
from helpers.unified_logger import short_id

from ...common import DECIMALS, PRICE_STALE_SECONDS
from ...exceptions import (
    ComposedTransactionUnavailable,
    DeploymentConfigError,
    InvalidAddressError,
    InvalidAmountError,
    MarketNotResolvedError,
)
from ...models import MarginAdjustment, MarginDirection
from ...onchain.executor import ChainResult, MoveTransaction, OnChainExecutor
from ...onchain.oracle import PythPriceService, SuiRpcClient
from ...onchain.transactions import DipCoinTransactions
from ..utils.converters import to_decimal, to_wei, to_wei_int
from .key_manager import KeyManager


@dataclass(frozen=True)
class ResolvedMarket:
    perp_id: str
    symbol: Optional[str] = None


@dataclass(frozen=True)
class PriceFreshnessCheck:
    """On-chain oracle arrival time compared against the chain clock."""

    arrival_time: int
    clock_time: int
    threshold: int = PRICE_STALE_SECONDS

    @property
    def age(self) -> int:
        return self.clock_time - self.arrival_time

    @property
    def is_stale(self) -> bool:
        return self.age > self.threshold


@dataclass(frozen=True)
class PriceUpdateOutcome:
    """
    Result of the best-effort price update step.

    ``error`` is set when the refresh could not be performed; the margin
    transaction still goes ahead without it.
    """

    applied: bool = False
    check: Optional[PriceFreshnessCheck] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: Any, check: Optional[PriceFreshnessCheck] = None) -> "PriceUpdateOutcome":
        return cls(applied=False, check=check, error=format_error(error))


class PriceUpdateStrategy(ABC):
    """Adds whatever price update the network needs ahead of a margin call."""

    @abstractmethod
    async def apply(self, transaction: MoveTransaction, market: ResolvedMarket) -> PriceUpdateOutcome:
        pass


class PythPriceUpdateStrategy(PriceUpdateStrategy):
    """Prepends Pyth update calls when the on-chain price is older than the threshold."""

    def __init__(
        self,
        rpc: SuiRpcClient,
        price_service: PythPriceService,
        transactions: DipCoinTransactions,
        stale_seconds: int = PRICE_STALE_SECONDS,
    ):
        self.rpc = rpc
        self.price_service = price_service
        self.transactions = transactions
        self.stale_seconds = stale_seconds

    async def check_freshness(self, perp_id: str) -> PriceFreshnessCheck:
        perp = self.transactions.deployment.perpetual(perp_id)
        if not perp.price_info_object_id:
            raise DeploymentConfigError(f"Perpetual {perp_id} has no price info object")
        arrival_time = await self.rpc.get_price_arrival_time(perp.price_info_object_id)
        clock_time = await self.rpc.get_clock_seconds()
        return PriceFreshnessCheck(arrival_time, clock_time, self.stale_seconds)

    async def apply(self, transaction: MoveTransaction, market: ResolvedMarket) -> PriceUpdateOutcome:
        check = None
        try:
            check = await self.check_freshness(market.perp_id)
            if not check.is_stale:
                return PriceUpdateOutcome(applied=False, check=check)

            feed_id = self.transactions.deployment.perpetual(market.perp_id).price_feed_id
            if not feed_id:
                raise DeploymentConfigError(f"Perpetual {market.perp_id} has no price feed id")
            update_data = await self.price_service.get_price_update_data(feed_id)
            for call in reversed(self.transactions.pyth_update_calls(market.perp_id, update_data)):
                transaction.prepend(call)
            return PriceUpdateOutcome(applied=True, check=check)
        except Exception as exc:
            return PriceUpdateOutcome.failed(exc, check)


class DirectOraclePriceStrategy(PriceUpdateStrategy):
    """Pushes the exchange's latest oracle price on chain, without a staleness check."""

    def __init__(
        self,
        get_oracle_price: Callable[[str], Awaitable[SDKResponse]],
        transactions: DipCoinTransactions,
    ):
        self.get_oracle_price = get_oracle_price
        self.transactions = transactions

    async def apply(self, transaction: MoveTransaction, market: ResolvedMarket) -> PriceUpdateOutcome:
        symbol = market.symbol
        if not symbol and market.perp_id in self.transactions.deployment.perpetuals:
            symbol = self.transactions.deployment.perpetual(market.perp_id).symbol
        if not symbol:
            return PriceUpdateOutcome.failed(f"No symbol known for perpetual {market.perp_id}")

        result = await self.get_oracle_price(symbol)
        if not result.status or result.data in (None, ""):
            return PriceUpdateOutcome.failed(result.error or f"No oracle price for {symbol}")

        transaction.prepend(self.transactions.set_oracle_price_call(market.perp_id, str(result.data)))
        return PriceUpdateOutcome(applied=True)


class MarginTxBuilder:
    """
    Builds and executes margin transactions signed by the main identity.

    On-chain failures propagate to the caller and are never retried.
    """

    def __init__(
        self,
        key_manager: KeyManager,
        executor: OnChainExecutor,
        transactions: Optional[DipCoinTransactions],
        price_strategy: Optional[PriceUpdateStrategy],
        resolve_perp_id: Callable[[str], Awaitable[Optional[str]]],
        logger: Any,
        gas_budget: Optional[int] = None,
    ):
        self.keys = key_manager
        self.executor = executor
        self.transactions = transactions
        self.price_strategy = price_strategy
        self.resolve_perp_id = resolve_perp_id
        self.logger = logger
        self.gas_budget = gas_budget

    @staticmethod
    def _validate_amount(amount: Any, decimals: int) -> str:
        value = to_decimal(amount)
        if value is None or not value.is_finite() or value <= 0:
            raise InvalidAmountError(f"Amount must be greater than 0: {amount!r}")
        if to_wei_int(value, decimals) <= 0:
            raise InvalidAmountError(f"Amount is below the smallest unit: {amount!r}")
        return to_wei(value, decimals)

    async def resolve_market(self, symbol: Optional[str] = None, perp_id: Optional[str] = None) -> ResolvedMarket:
        if perp_id:
            return ResolvedMarket(perp_id=perp_id, symbol=symbol)
        if symbol:
            resolved = await self.resolve_perp_id(symbol)
            if resolved:
                return ResolvedMarket(perp_id=resolved, symbol=symbol)
            raise MarketNotResolvedError(f"Could not resolve perpetual id for {symbol}")
        raise MarketNotResolvedError("Either perp_id or symbol is required")

    @property
    def can_compose(self) -> bool:
        return self.transactions is not None and getattr(self.executor, "supports_composition", False)

    async def adjust(self, adjustment: MarginAdjustment) -> ChainResult:
        """Add or remove isolated margin for one position."""
        amount = self._validate_amount(adjustment.amount, DECIMALS["DEFAULT"])
        market = await self.resolve_market(adjustment.symbol, adjustment.perp_id)
        direction = MarginDirection(adjustment.direction)
        identity = self.keys.main_identity
        account = adjustment.account or identity.address
        gas_budget = adjustment.gas_budget or self.gas_budget

        self.logger.info(
            f"[DIPCOIN] {direction.value} margin {adjustment.amount} on {market.symbol or short_id(market.perp_id)}"
        )

        if self.can_compose:
            transaction = MoveTransaction(gas_budget=gas_budget, sender=identity.address)
            if self.price_strategy is not None:
                outcome = await self.price_strategy.apply(transaction, market)
                if outcome.error:
                    self.logger.warning(f"[DIPCOIN] Price update skipped: {outcome.error}")
                elif outcome.applied:
                    self.logger.debug(f"[DIPCOIN] Price update added for {short_id(market.perp_id)}")
            transaction.add(self.transactions.margin_call(direction.value, market.perp_id, account, amount))
            try:
                return await self.executor.execute(transaction, identity)
            except ComposedTransactionUnavailable as exc:
                self.logger.warning(f"[DIPCOIN] Composed transaction unavailable ({exc}), using direct call")

        if direction == MarginDirection.ADD:
            return await self.executor.add_margin(identity, market.perp_id, amount, account, gas_budget)
        return await self.executor.remove_margin(identity, market.perp_id, amount, account, gas_budget)

    async def add_margin(self, amount: Any, *, symbol: Optional[str] = None, perp_id: Optional[str] = None, **kwargs) -> ChainResult:
        return await self.adjust(
            MarginAdjustment(amount=amount, direction=MarginDirection.ADD, symbol=symbol, perp_id=perp_id, **kwargs)
        )

    async def remove_margin(self, amount: Any, *, symbol: Optional[str] = None, perp_id: Optional[str] = None, **kwargs) -> ChainResult:
        return await self.adjust(
            MarginAdjustment(amount=amount, direction=MarginDirection.REMOVE, symbol=symbol, perp_id=perp_id, **kwargs)
        )

    # ========================================================================
    # BANK
    # ========================================================================

    async def deposit_to_bank(self, amount: Any, gas_budget: Optional[int] = None) -> ChainResult:
        """Deposit USDC (standard units, e.g. 10 = 10 USDC) into the exchange bank."""
        amount_wei = self._validate_amount(amount, DECIMALS["USDC"])
        self.logger.info(f"[DIPCOIN] Depositing {amount} USDC to bank")
        return await self.executor.deposit_to_bank(
            self.keys.main_identity, amount_wei, self.keys.address, gas_budget or self.gas_budget
        )

    async def withdraw_from_bank(self, amount: Any, gas_budget: Optional[int] = None) -> ChainResult:
        amount_wei = self._validate_amount(amount, DECIMALS["USDC"])
        self.logger.info(f"[DIPCOIN] Withdrawing {amount} USDC from bank")
        return await self.executor.withdraw_from_bank(
            self.keys.main_identity, amount_wei, self.keys.address, gas_budget or self.gas_budget
        )

    # ========================================================================
    # SUB ACCOUNTS
    # ========================================================================

    async def set_sub_account(
        self, sub_address: str, status: bool = True, gas_budget: Optional[int] = None
    ) -> ChainResult:
        """Authorize ``sub_address`` to trade for the main account, or revoke it with ``status=False``."""
        if not sub_address:
            raise InvalidAddressError("Sub account address is required")
        identity = self.keys.main_identity
        gas_budget = gas_budget or self.gas_budget
        self.logger.info(f"[DIPCOIN] {'Authorizing' if status else 'Revoking'} sub account {short_id(sub_address)}")

        if self.can_compose:
            transaction = MoveTransaction(gas_budget=gas_budget, sender=identity.address)
            transaction.add(self.transactions.set_sub_account_call(sub_address, status))
            try:
                return await self.executor.execute(transaction, identity)
            except ComposedTransactionUnavailable as exc:
                self.logger.warning(f"[DIPCOIN] Composed transaction unavailable ({exc}), using direct call")

        return await self.executor.set_sub_account(identity, sub_address, status, gas_budget)
