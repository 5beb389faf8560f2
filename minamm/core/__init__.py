"""
Core pool ledger and pricing
"""

from .cpmm import compute_effective_in, price_exact_in, quote_exact_in
from .errors import (
    AmmError,
    ArithmeticOverflow,
    FeeTooHigh,
    InsufficientLiquidity,
    InvalidAmount,
    PoolNotFound,
    ReentrantCall,
    SlippageExceeded,
    TransferFailed,
    Unauthorized,
)
from .events import EventBus, EventKind, LiquidityAdded, TokensSwapped
from .fees import DEFAULT_FEE_RATE_PPT, MAX_FEE_RATE_PPT, validate_fee_rate
from .interfaces import AssetTransferService
from .ledger import PoolLedger

__all__ = [
    "compute_effective_in",
    "price_exact_in",
    "quote_exact_in",
    "AmmError",
    "ArithmeticOverflow",
    "FeeTooHigh",
    "InsufficientLiquidity",
    "InvalidAmount",
    "PoolNotFound",
    "ReentrantCall",
    "SlippageExceeded",
    "TransferFailed",
    "Unauthorized",
    "EventBus",
    "EventKind",
    "LiquidityAdded",
    "TokensSwapped",
    "DEFAULT_FEE_RATE_PPT",
    "MAX_FEE_RATE_PPT",
    "validate_fee_rate",
    "AssetTransferService",
    "PoolLedger",
]
