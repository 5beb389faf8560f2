"""
State management for the minamm pool ledger
"""

from .balances import MAX_UINT256, BalanceTable
from .deposits import DepositTable
from .pools import AssetPair, PoolState

__all__ = [
    "MAX_UINT256",
    "BalanceTable",
    "DepositTable",
    "AssetPair",
    "PoolState",
]
