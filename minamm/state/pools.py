"""
Pool state for directed asset pairs.

Pools are keyed by an *ordered* pair: the pool for (A, B) and the pool for
(B, A) hold independent reserves. A deposit into one never provisions
liquidity for swaps in the other direction.
"""

from __future__ import annotations

from dataclasses import dataclass

from .balances import AssetId, Amount


@dataclass(frozen=True, order=True)
class AssetPair:
    """
    Directed pool key.

    Attributes:
        asset_in: Asset the pool receives on swaps (reserve_in side)
        asset_out: Asset the pool pays out on swaps (reserve_out side)

    Pairs with equal assets can be constructed; the ledger rejects them.
    """
    asset_in: AssetId
    asset_out: AssetId

    def __post_init__(self):
        if not isinstance(self.asset_in, str) or not self.asset_in:
            raise TypeError("asset_in must be a non-empty string")
        if not isinstance(self.asset_out, str) or not self.asset_out:
            raise TypeError("asset_out must be a non-empty string")

    @property
    def is_degenerate(self) -> bool:
        return self.asset_in == self.asset_out

    def to_dict(self) -> dict:
        return {"asset_in": self.asset_in, "asset_out": self.asset_out}

    def __str__(self) -> str:
        return f"{self.asset_in}->{self.asset_out}"


@dataclass
class PoolState:
    """
    Reserve ledger for one directed pair.

    Attributes:
        reserve_in: Balance of the pair's first asset held by the pool
        reserve_out: Balance of the pair's second asset held by the pool
        initialized: True once any deposit has occurred
    """
    reserve_in: Amount = 0
    reserve_out: Amount = 0
    initialized: bool = False

    def __post_init__(self):
        """Validate pool state invariants."""
        if self.reserve_in < 0 or self.reserve_out < 0:
            raise ValueError(
                f"Reserves must be non-negative: ({self.reserve_in}, {self.reserve_out})"
            )
        if self.initialized and (self.reserve_in == 0 or self.reserve_out == 0):
            raise ValueError(
                f"Initialized pool must hold both reserves: ({self.reserve_in}, {self.reserve_out})"
            )

    def get_constant_product(self) -> int:
        """Compute k = reserve_in * reserve_out."""
        return self.reserve_in * self.reserve_out

    def copy(self) -> "PoolState":
        return PoolState(
            reserve_in=self.reserve_in,
            reserve_out=self.reserve_out,
            initialized=self.initialized,
        )

    def as_tuple(self) -> tuple:
        return (self.reserve_in, self.reserve_out, self.initialized)
