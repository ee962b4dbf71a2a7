"""
DipCoin exchange client implementation for order signing and submission.
"""

import os
from typing import Any, Callable, Dict, List, Optional, Union

from exchange_clients.base_client import BaseExchangeClient
from exchange_clients.base_models import SDKResponse, format_error, validate_credentials
from helpers.unified_logger import get_exchange_logger
from networking.exceptions import TransportError
from networking.http import DipCoinHttpClient

from ..common import DECIMALS
from ..config import DipCoinConfig
from ..exceptions import DipCoinClientError
from ..models import CoinBalance, PageParams, PlaceOrderRequest, PositionTpSlRequest
from ..onchain.executor import ChainResult, OnChainExecutor
from ..onchain.oracle import PythPriceService, SuiRpcClient
from ..onchain.transactions import DipCoinTransactions
from .managers.account_manager import DipCoinAccountManager, QueryInput
from .managers.key_manager import KeyInput, KeyManager
from .managers.margin_manager import (
    DirectOraclePriceStrategy,
    MarginTxBuilder,
    PriceUpdateStrategy,
    PythPriceUpdateStrategy,
)
from .managers.order_manager import DipCoinOrderManager, OrderBuilder
from .managers.session_manager import SessionManager
from .managers.submission import SubmissionPipeline
from .utils import MessageSigner, SuiIdentity, TradingPairsCache
from .utils.converters import from_wei


class DipCoinClient(BaseExchangeClient):
    """DipCoin (Sui) perpetual exchange client."""

    def __init__(
        self,
        config: DipCoinConfig,
        private_key: Optional[KeyInput] = None,
        sub_account_key: Optional[KeyInput] = None,
        *,
        executor: Optional[OnChainExecutor] = None,
        transport: Optional[DipCoinHttpClient] = None,
        rpc: Optional[SuiRpcClient] = None,
        price_service: Optional[PythPriceService] = None,
        legacy_support: bool = False,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize DipCoin client.

        Args:
            config: DipCoin configuration
            private_key: Main key string or identity (falls back to DIPCOIN_PRIVATE_KEY)
            sub_account_key: Optional trading sub-account key (falls back to DIPCOIN_SUB_ACCOUNT_KEY)
            executor: On-chain executor used for margin and bank transactions
            transport: Optional pre-built HTTP transport
            rpc: Optional Sui RPC reader (price freshness checks, wallet balances)
            price_service: Optional Pyth Hermes client
            legacy_support: Accept exported ``{schema, privateKey}`` key objects
            clock: Wall clock in seconds, used for order salts
        """
        # Set credentials BEFORE calling super().__init__() because it triggers _validate_config()
        self.private_key = private_key or os.getenv("DIPCOIN_PRIVATE_KEY")
        self.sub_account_key = sub_account_key or os.getenv("DIPCOIN_SUB_ACCOUNT_KEY") or None

        super().__init__(config)

        self.logger = get_exchange_logger("dipcoin", network=self.config.network)

        self.keys = KeyManager(
            self.private_key,
            self.sub_account_key,
            legacy_support=legacy_support,
            logger=self.logger,
        )
        self.signer = MessageSigner()

        self._owns_transport = transport is None
        self.transport = transport or DipCoinHttpClient(
            self.config.api_base_url, timeout=self.config.request_timeout
        )

        self.sessions = SessionManager(
            transport=self.transport,
            key_manager=self.keys,
            signer=self.signer,
            logger=self.logger,
            auth_wait_timeout=self.config.auth_wait_timeout,
        )
        self.pipeline = SubmissionPipeline(self.transport, self.sessions, self.logger)

        self._trading_pairs = TradingPairsCache(ttl_seconds=self.config.trading_pairs_ttl)
        self.order_builder = OrderBuilder(self.keys, self.signer, clock=clock)
        self.order_manager = DipCoinOrderManager(self.order_builder, self.pipeline, self.keys, self.logger)
        self.account_manager = DipCoinAccountManager(self.pipeline, self._trading_pairs, self.logger)

        self._owned_readers: List[Any] = []
        self.rpc = rpc
        self.executor = executor
        self.margin: Optional[MarginTxBuilder] = None
        if executor is not None:
            transactions = DipCoinTransactions(self.config.deployment) if self.config.deployment else None
            self.margin = MarginTxBuilder(
                key_manager=self.keys,
                executor=executor,
                transactions=transactions,
                price_strategy=self._build_price_strategy(transactions, price_service),
                resolve_perp_id=self.account_manager.get_perpetual_id,
                logger=self.logger,
                gas_budget=self.config.gas_budget,
            )

    def _validate_config(self) -> None:
        """Validate DipCoin configuration."""
        if not isinstance(self.private_key, SuiIdentity):
            validate_credentials("DIPCOIN_PRIVATE_KEY", self.private_key)
        if not self.config.api_base_url:
            raise ValueError("DipCoin api_base_url is required")

    def _build_price_strategy(
        self,
        transactions: Optional[DipCoinTransactions],
        price_service: Optional[PythPriceService],
    ) -> Optional[PriceUpdateStrategy]:
        if transactions is None:
            return None
        if not self.config.uses_pyth:
            return DirectOraclePriceStrategy(self.account_manager.get_oracle_price, transactions)

        if price_service is None:
            price_service = PythPriceService(self.config.price_service_url, timeout=self.config.request_timeout)
            self._owned_readers.append(price_service)
        return PythPriceUpdateStrategy(
            self._rpc_reader(),
            price_service,
            transactions,
            stale_seconds=self.config.price_stale_seconds,
        )

    def _rpc_reader(self) -> SuiRpcClient:
        if self.rpc is None:
            self.rpc = SuiRpcClient(self.config.rpc_url, timeout=self.config.request_timeout)
            self._owned_readers.append(self.rpc)
        return self.rpc

    def _require_margin(self) -> MarginTxBuilder:
        if self.margin is None:
            raise DipCoinClientError("No on-chain executor configured for margin and bank transactions")
        return self.margin

    # ========================================================================
    # CONNECTION MANAGEMENT
    # ========================================================================

    async def disconnect(self) -> None:
        """Close HTTP clients owned by this instance."""
        self.sessions.clear_all()
        for reader in self._owned_readers:
            await reader.aclose()
            if reader is self.rpc:
                self.rpc = None
        self._owned_readers = []
        if self._owns_transport:
            await self.transport.aclose()
        self.logger.info("[DIPCOIN] Disconnected")

    def get_exchange_name(self) -> str:
        return "dipcoin"

    # ========================================================================
    # IDENTITY & AUTHENTICATION
    # ========================================================================

    @property
    def address(self) -> str:
        return self.keys.address

    @property
    def sub_account_address(self) -> Optional[str]:
        return self.keys.sub_address

    async def authenticate(self) -> SDKResponse[str]:
        return await self.sessions.authenticate()

    async def authenticate_sub_account(self) -> SDKResponse[str]:
        if not self.keys.has_sub_account:
            return SDKResponse.fail("No sub account configured")
        return await self.sessions.authenticate(self.keys.sub_identity)

    async def get_jwt_token(self, force_refresh: bool = False) -> SDKResponse[str]:
        return await self.sessions.get_token(force_refresh=force_refresh)

    def clear_auth(self) -> None:
        self.sessions.clear_all()

    # ========================================================================
    # ORDER MANAGEMENT
    # ========================================================================

    async def place_order(self, request: PlaceOrderRequest) -> SDKResponse:
        return await self.order_manager.place_order(request)

    async def cancel_order(
        self,
        symbol: str,
        order_hashes: List[str],
        parent_address: Optional[str] = None,
    ) -> SDKResponse:
        return await self.order_manager.cancel_order(symbol, order_hashes, parent_address)

    async def place_position_tpsl_orders(self, request: PositionTpSlRequest) -> SDKResponse:
        return await self.order_manager.place_position_tpsl(request)

    async def cancel_tpsl_orders(
        self,
        symbol: str,
        plan_ids: List[str],
        parent_address: Optional[str] = None,
    ) -> SDKResponse:
        return await self.order_manager.cancel_tpsl_orders(symbol, plan_ids, parent_address)

    async def get_position_tpsl(self, position_id: str, tpsl_type: Optional[str] = None) -> SDKResponse:
        return await self.order_manager.get_position_tpsl(position_id, tpsl_type)

    # ========================================================================
    # ACCOUNT & POSITIONS
    # ========================================================================

    async def get_account_info(self, parent_address: Optional[str] = None) -> SDKResponse:
        return await self.account_manager.get_account_info(parent_address)

    async def get_positions(self, params: QueryInput = None) -> SDKResponse:
        return await self.account_manager.get_positions(params)

    async def get_open_orders(self, params: QueryInput = None) -> SDKResponse:
        return await self.account_manager.get_open_orders(params)

    async def get_history_orders(self, params: Union[PageParams, Dict[str, Any], None] = None) -> SDKResponse:
        return await self.account_manager.get_history_orders(params)

    async def get_funding_settlements(self, params: Union[PageParams, Dict[str, Any], None] = None) -> SDKResponse:
        return await self.account_manager.get_funding_settlements(params)

    async def get_balance_changes(self, params: Union[PageParams, Dict[str, Any], None] = None) -> SDKResponse:
        return await self.account_manager.get_balance_changes(params)

    async def get_user_config(self, symbol: str, parent_address: Optional[str] = None) -> SDKResponse:
        return await self.account_manager.get_user_config(symbol, parent_address)

    async def adjust_leverage(
        self,
        symbol: str,
        leverage: Any,
        margin_type: str = "ISOLATED",
        parent_address: Optional[str] = None,
    ) -> SDKResponse:
        return await self.account_manager.adjust_leverage(symbol, leverage, margin_type, parent_address)

    # ========================================================================
    # MARKET DATA
    # ========================================================================

    async def get_trading_pairs(self) -> SDKResponse:
        return await self.account_manager.get_trading_pairs()

    async def get_perpetual_id(self, symbol: str) -> Optional[str]:
        return await self.account_manager.get_perpetual_id(symbol)

    async def get_oracle_price(self, symbol: str) -> SDKResponse:
        return await self.account_manager.get_oracle_price(symbol)

    # ========================================================================
    # COLLATERAL
    # ========================================================================

    async def add_margin(
        self,
        amount: Any,
        *,
        symbol: Optional[str] = None,
        perp_id: Optional[str] = None,
        account: Optional[str] = None,
        gas_budget: Optional[int] = None,
    ) -> ChainResult:
        return await self._require_margin().add_margin(
            amount, symbol=symbol, perp_id=perp_id, account=account, gas_budget=gas_budget
        )

    async def remove_margin(
        self,
        amount: Any,
        *,
        symbol: Optional[str] = None,
        perp_id: Optional[str] = None,
        account: Optional[str] = None,
        gas_budget: Optional[int] = None,
    ) -> ChainResult:
        return await self._require_margin().remove_margin(
            amount, symbol=symbol, perp_id=perp_id, account=account, gas_budget=gas_budget
        )

    async def deposit_to_bank(self, amount: Any) -> ChainResult:
        return await self._require_margin().deposit_to_bank(amount)

    async def withdraw_from_bank(self, amount: Any) -> ChainResult:
        return await self._require_margin().withdraw_from_bank(amount)

    # ========================================================================
    # SUB ACCOUNTS & WALLET
    # ========================================================================

    async def set_sub_account(self, sub_address: Optional[str] = None, status: bool = True) -> ChainResult:
        """Register the configured (or given) sub account on chain so it can trade for this account."""
        return await self._require_margin().set_sub_account(sub_address or self.keys.sub_address, status)

    async def get_coin_metadata(self, coin_type: str) -> SDKResponse:
        try:
            metadata = await self._rpc_reader().get_coin_metadata(coin_type)
        except TransportError as exc:
            return SDKResponse.fail(format_error(exc))
        if metadata is None:
            return SDKResponse.fail(f"No metadata for {coin_type}")
        return SDKResponse.ok(metadata)

    async def get_all_balances(self, owner: Optional[str] = None, with_metadata: bool = True) -> SDKResponse:
        """
        On-chain coin balances of ``owner`` (the main wallet by default).

        With ``with_metadata`` each entry gets its symbol, decimals and a
        scaled ``balance``; coins without metadata fall back to SUI's 9
        decimals.
        """
        owner = owner or self.address
        try:
            raw = await self._rpc_reader().get_all_balances(owner)
        except TransportError as exc:
            self.logger.error(f"[DIPCOIN] Balance query failed: {exc}")
            return SDKResponse.fail(format_error(exc))

        balances = [CoinBalance.from_dict(entry) for entry in raw if isinstance(entry, dict)]
        if with_metadata:
            for balance in balances:
                metadata = await self.get_coin_metadata(balance.coin_type)
                if metadata.status:
                    balance.symbol = metadata.data.get("symbol")
                    decimals = metadata.data.get("decimals")
                    balance.decimals = int(decimals) if decimals is not None else None
                decimals = balance.decimals if balance.decimals is not None else DECIMALS["SUI"]
                balance.balance = from_wei(balance.total_balance, decimals)
        return SDKResponse.ok(balances)
