"""
DipCoin client managers package.

This package contains manager classes for different responsibilities:
- key_manager: Main and sub-account signing identities
- session_manager: Bearer-token sessions and identity scoping
- submission: Authenticated request pipeline with retry-on-expiry
- order_manager: Order building, signing and submission
- account_manager: Account, history and market reads
- margin_manager: On-chain margin and bank transactions
"""

from .key_manager import KeyManager
from .session_manager import Session, SessionManager
from .submission import AuthenticatedRequest, SubmissionPipeline
from .order_manager import DipCoinOrderManager, OrderBuilder
from .account_manager import DipCoinAccountManager
from .margin_manager import (
    DirectOraclePriceStrategy,
    MarginTxBuilder,
    PriceFreshnessCheck,
    PriceUpdateOutcome,
    PriceUpdateStrategy,
    PythPriceUpdateStrategy,
)

__all__ = [
    'KeyManager',
    'Session',
    'SessionManager',
    'AuthenticatedRequest',
    'SubmissionPipeline',
    'DipCoinOrderManager',
    'OrderBuilder',
    'DipCoinAccountManager',
    'DirectOraclePriceStrategy',
    'MarginTxBuilder',
    'PriceFreshnessCheck',
    'PriceUpdateOutcome',
    'PriceUpdateStrategy',
    'PythPriceUpdateStrategy',
]
