"""
minamm: directed-pool constant-product AMM engine.
"""

from .core.errors import AmmError
from .core.ledger import PoolLedger
from .state.pools import AssetPair

__all__ = [
    "AmmError",
    "AssetPair",
    "PoolLedger",
]
