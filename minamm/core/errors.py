"""Exception types for the pool ledger.

Every ledger operation either completes or raises one of these, leaving the
ledger state exactly as it was before the call. ``code`` is the stable name
surfaced through ``AmmTxResult`` in ``minamm.integration.amm_engine``.
"""

from __future__ import annotations


class AmmError(Exception):
    """Base class for all ledger failures."""

    code = "AmmError"


class InvalidAmount(AmmError):
    """Zero or out-of-range amount, or a pair whose assets are identical."""

    code = "InvalidAmount"


class PoolNotFound(AmmError):
    """Swap or quote against a pair that has never received a deposit."""

    code = "PoolNotFound"


class SlippageExceeded(AmmError):
    """Priced output is below the caller's ``min_amount_out``."""

    code = "SlippageExceeded"

    def __init__(self, amount_out: int, min_amount_out: int) -> None:
        self.amount_out = amount_out
        self.min_amount_out = min_amount_out
        super().__init__(f"amount_out {amount_out} < min_amount_out {min_amount_out}")


class InsufficientLiquidity(AmmError):
    """Priced output exceeds the output reserve."""

    code = "InsufficientLiquidity"


class TransferFailed(AmmError):
    """The asset transfer service rejected or failed a transfer leg."""

    code = "TransferFailed"


class Unauthorized(AmmError):
    """A restricted operation was called by someone other than the administrator."""

    code = "Unauthorized"


class FeeTooHigh(AmmError):
    """Fee rate above the configured maximum."""

    code = "FeeTooHigh"


class ArithmeticOverflow(AmmError):
    """A reserve or record update would exceed MAX_UINT256."""

    code = "ArithmeticOverflow"


class ReentrantCall(AmmError):
    """An operation re-entered a pool whose operation is still in flight on this thread."""

    code = "ReentrantCall"
