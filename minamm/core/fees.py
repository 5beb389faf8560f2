"""
Fee rate configuration bounds.

Fees are expressed in parts-per-thousand (ppt) of the gross swap input.
"""

from __future__ import annotations

from ..state.balances import is_uint
from .errors import FeeTooHigh, InvalidAmount


PPT_DENOM = 1_000
DEFAULT_FEE_RATE_PPT = 3  # 0.3%
MAX_FEE_RATE_PPT = 10  # 1%


def validate_fee_rate(fee_rate: int) -> int:
    """
    Return `fee_rate` if it is a valid ppt rate.

    Raises:
        InvalidAmount: not a non-negative int
        FeeTooHigh: above MAX_FEE_RATE_PPT
    """
    if not is_uint(fee_rate):
        raise InvalidAmount(f"fee rate must be a non-negative int, got {fee_rate!r}")
    if fee_rate > MAX_FEE_RATE_PPT:
        raise FeeTooHigh(f"fee rate {fee_rate} exceeds maximum {MAX_FEE_RATE_PPT}")
    return int(fee_rate)


def fee_rate_as_percent(fee_rate: int) -> str:
    """Human-readable rate, e.g. 3 -> '0.3%'."""
    whole, frac = divmod(fee_rate, 10)
    return f"{whole}.{frac}%"
