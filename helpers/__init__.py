"""
Helper modules for dipcoin-perp-tools.
"""

from .unified_logger import get_logger, get_exchange_logger, get_core_logger, short_id

__all__ = [
    'get_logger',
    'get_exchange_logger',
    'get_core_logger',
    'short_id',
]
