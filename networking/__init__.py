"""
Networking helpers shared by exchange clients.

Provides the async JSON transport used to talk to the DipCoin REST API.
"""

from .exceptions import NetworkingError, TransportError
from .http import ApiResponse, DipCoinHttpClient, create_httpx_client

__all__ = [
    "ApiResponse",
    "DipCoinHttpClient",
    "NetworkingError",
    "TransportError",
    "create_httpx_client",
]
