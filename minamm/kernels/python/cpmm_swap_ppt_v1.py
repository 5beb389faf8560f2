"""
CPMM swap kernel (parts-per-thousand fee, v1 semantics).

- Fee is deducted from the *gross* input amount with floor rounding on the
  effective input: `effective_in = floor(amount_in * (1000 - fee_ppt) / 1000)`.
- Pricing uses `amount_out = floor(effective_in * reserve_out / (reserve_in + effective_in))`.
- The whole gross input is credited to the input reserve (the fee stays in the pool).

Python integers are arbitrary precision, so the intermediate product
`effective_in * reserve_out` cannot wrap around.
"""

from __future__ import annotations

from dataclasses import dataclass


PPT_DENOM = 1_000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class SwapExactInResult:
    amount_out: int
    fee_total: int
    effective_in: int
    gross_in: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


def compute_effective_in(*, gross_in: int, fee_ppt: int) -> int:
    """
    Compute `effective_in = floor(gross_in * (1000 - fee_ppt) / 1000)`.
    """
    _require_int("gross_in", gross_in)
    _require_int("fee_ppt", fee_ppt)
    if gross_in < 0:
        raise ValueError("gross_in must be non-negative")
    if not (0 <= fee_ppt <= PPT_DENOM):
        raise ValueError(f"fee_ppt must be in [0, {PPT_DENOM}]")
    return (gross_in * (PPT_DENOM - fee_ppt)) // PPT_DENOM


def swap_exact_in(
    *,
    reserve_in: int,
    reserve_out: int,
    amount_in: int,
    fee_ppt: int,
) -> SwapExactInResult:
    """
    Exact-in swap quote + post-state.

    A zero `amount_out` is a valid result (deep pool, dust input); callers
    decide whether it is acceptable through their own slippage bound.

    Raises ValueError on invalid inputs.
    """
    for name, v in (
        ("reserve_in", reserve_in),
        ("reserve_out", reserve_out),
        ("amount_in", amount_in),
        ("fee_ppt", fee_ppt),
    ):
        _require_int(name, v)

    if reserve_in < 0 or reserve_out < 0:
        raise ValueError("reserves must be non-negative")
    if reserve_in == 0 or reserve_out == 0:
        raise ValueError("cannot swap against an empty reserve")
    if amount_in <= 0:
        raise ValueError("amount_in must be positive")

    k_before = reserve_in * reserve_out

    effective_in = compute_effective_in(gross_in=amount_in, fee_ppt=fee_ppt)
    fee_total = amount_in - effective_in

    denominator = reserve_in + effective_in
    amount_out = (effective_in * reserve_out) // denominator

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    k_after = new_reserve_in * new_reserve_out

    return SwapExactInResult(
        amount_out=amount_out,
        fee_total=fee_total,
        effective_in=effective_in,
        gross_in=amount_in,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=k_before,
        k_after=k_after,
    )
