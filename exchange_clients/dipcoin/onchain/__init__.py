"""On-chain collaborators for DipCoin margin transactions."""

from .executor import ChainResult, GasCoinSplit, MoveCall, MoveResult, MoveTransaction, OnChainExecutor
from .oracle import PythPriceService, SuiRpcClient
from .transactions import DipCoinTransactions

__all__ = [
    "ChainResult",
    "GasCoinSplit",
    "MoveCall",
    "MoveResult",
    "MoveTransaction",
    "OnChainExecutor",
    "PythPriceService",
    "SuiRpcClient",
    "DipCoinTransactions",
]
