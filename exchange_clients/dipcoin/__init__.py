"""
DipCoin exchange client implementation.

Signs orders with Sui identities and submits them to the DipCoin perpetual
exchange; composes on-chain margin transactions.
"""

from .client import DipCoinClient
from .config import DeploymentConfig, DipCoinConfig, load_config_from_env, load_credentials_from_env
from .models import OrderSide, OrderType, PlaceOrderRequest, PositionTpSlRequest, TpSlConfig

__all__ = [
    "DipCoinClient",
    "DeploymentConfig",
    "DipCoinConfig",
    "load_config_from_env",
    "load_credentials_from_env",
    "OrderSide",
    "OrderType",
    "PlaceOrderRequest",
    "PositionTpSlRequest",
    "TpSlConfig",
]
