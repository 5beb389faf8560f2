"""
Constant Product Market Maker (CPMM) pricing for directed pools.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per quote
- Space Complexity: O(1) auxiliary
- Invariant: After each swap, x' * y' >= x * y (the fee and the floor rounding
  both stay in the pool)

`quote_exact_in` is the single pricing function: the ledger uses it for both
read-only quotes and swaps, so a quote always equals the output of a swap
executed against the same state.
"""

from ..state.balances import Amount
from ..state.pools import PoolState
from ..kernels.python.cpmm_swap_ppt_v1 import compute_effective_in as _kernel_compute_effective_in
from ..kernels.python.cpmm_swap_ppt_v1 import swap_exact_in as _kernel_swap_exact_in
from .errors import PoolNotFound


def compute_effective_in(gross_amount: Amount, fee_ppt: int) -> Amount:
    """
    Input left after the fee:
        effective_in = floor(gross_amount * (1000 - fee_ppt) / 1000)
    """
    if gross_amount < 0:
        raise ValueError(f"gross_amount must be non-negative: {gross_amount}")
    return _kernel_compute_effective_in(gross_in=gross_amount, fee_ppt=fee_ppt)


def price_exact_in(
    reserve_in: Amount,
    reserve_out: Amount,
    amount_in: Amount,
    fee_ppt: int,
) -> Amount:
    """
    Compute output amount for an exact-in swap with deterministic rounding.

    This implements the CPMM formula:
        effective_in = floor(amount_in * (1000 - fee_ppt) / 1000)
        amount_out = floor(effective_in * reserve_out / (reserve_in + effective_in))

    Args:
        reserve_in: Current reserve of input asset
        reserve_out: Current reserve of output asset
        amount_in: Exact input amount
        fee_ppt: Fee in parts-per-thousand

    Returns:
        amount_out (may be 0 for dust inputs against deep pools)

    Raises:
        ValueError: If inputs are invalid
    """
    res = _kernel_swap_exact_in(
        reserve_in=reserve_in,
        reserve_out=reserve_out,
        amount_in=amount_in,
        fee_ppt=fee_ppt,
    )
    return res.amount_out


def quote_exact_in(pool: PoolState, amount_in: Amount, fee_ppt: int) -> Amount:
    """
    Price `amount_in` against `pool` without touching it.

    Raises:
        PoolNotFound: If the pool has never been initialized
    """
    if not pool.initialized:
        raise PoolNotFound("pool has no liquidity")
    return price_exact_in(pool.reserve_in, pool.reserve_out, amount_in, fee_ppt)
