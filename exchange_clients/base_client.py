"""Base interface for signing perpetual exchange clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .base_models import SDKResponse


class BaseExchangeClient(ABC):
    """
    Base interface for order signing and submission on perpetual DEXs.

    Key Responsibilities:
        - Session authentication against the exchange API
        - Order placement and cancellation (signed by the trading identity)
        - Account, position and open order queries
        - Collateral management on-chain

    Implementation Pattern:
        Each exchange implements this interface in ``client/core.py`` and
        delegates the actual work to managers:

        ```python
        class DipCoinClient(BaseExchangeClient):
            def __init__(self, config: DipCoinConfig, private_key: str):
                super().__init__(config)
                ...
        ```
    """

    def __init__(self, config: Any):
        """
        Initialize the exchange client with configuration.

        Args:
            config: Exchange configuration object
        """
        self.config = config
        self._validate_config()

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate the exchange-specific configuration.

        Raise MissingCredentialsError if credentials are missing or
        placeholders.
        """
        pass

    # ========================================================================
    # CONNECTION MANAGEMENT
    # ========================================================================

    async def connect(self) -> None:
        """Open network resources. Clients that connect lazily may keep the default."""
        return None

    @abstractmethod
    async def disconnect(self) -> None:
        """Close HTTP sessions and release network resources."""
        pass

    @abstractmethod
    def get_exchange_name(self) -> str:
        """Return the exchange identifier (e.g. "dipcoin")."""
        pass

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # ========================================================================
    # AUTHENTICATION
    # ========================================================================

    @abstractmethod
    async def authenticate(self) -> SDKResponse[str]:
        """Obtain (or reuse) a session token for the configured identity."""
        pass

    @abstractmethod
    def clear_auth(self) -> None:
        """Drop every cached session token (logout)."""
        pass

    # ========================================================================
    # ORDER MANAGEMENT
    # ========================================================================

    @abstractmethod
    async def place_order(self, request: Any) -> SDKResponse:
        """Sign and submit an order."""
        pass

    @abstractmethod
    async def cancel_order(self, symbol: str, order_hashes: List[str], parent_address: Optional[str] = None) -> SDKResponse:
        """Sign and submit a cancellation for one or more orders."""
        pass

    # ========================================================================
    # ACCOUNT & POSITIONS
    # ========================================================================

    @abstractmethod
    async def get_account_info(self, parent_address: Optional[str] = None) -> SDKResponse:
        """Return balances, margin and PnL for the account."""
        pass

    @abstractmethod
    async def get_positions(self, params: Optional[Any] = None) -> SDKResponse[List[Dict[str, Any]]]:
        """Return open positions, optionally filtered."""
        pass

    @abstractmethod
    async def get_open_orders(self, params: Optional[Any] = None) -> SDKResponse[List[Dict[str, Any]]]:
        """Return resting orders, optionally filtered."""
        pass

    # ========================================================================
    # COLLATERAL
    # ========================================================================

    @abstractmethod
    async def add_margin(self, amount: Any, *, symbol: Optional[str] = None, perp_id: Optional[str] = None) -> Any:
        """Move collateral into an isolated position."""
        pass

    @abstractmethod
    async def remove_margin(self, amount: Any, *, symbol: Optional[str] = None, perp_id: Optional[str] = None) -> Any:
        """Move collateral out of an isolated position."""
        pass
