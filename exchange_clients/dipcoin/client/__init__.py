"""
DipCoin client package.

This package contains the modular DipCoin client implementation:
- core: Main DipCoinClient class
- managers: Manager classes for different responsibilities
- utils: Signing, order encoding, conversion and caching helpers
"""

from .core import DipCoinClient

__all__ = ["DipCoinClient"]
