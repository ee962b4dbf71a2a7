"""
Shared Exchange Clients Library

Provides the signing/submission interface for perpetual DEX clients and the
DipCoin implementation.

Modules:
    - base_client: Trading execution interface (BaseExchangeClient)
    - base_models: Shared dataclasses/utilities
    - dipcoin: DipCoin (Sui) perpetual client
"""

from .base_client import BaseExchangeClient
from .base_models import (
    MissingCredentialsError,
    SDKResponse,
    format_error,
    query_retry,
    validate_credentials,
)

__all__ = [
    "BaseExchangeClient",
    "MissingCredentialsError",
    "SDKResponse",
    "format_error",
    "query_retry",
    "validate_credentials",
]

__version__ = "1.0.0"
