"""
Per-depositor contribution tracking for directed pools.

Records the running total of the pair's first asset each depositor has put
into a pool. Nothing redeems against these records; they are bookkeeping only.
"""

from __future__ import annotations

from typing import Dict, Tuple

from .balances import Amount, Identity
from .pools import AssetPair


class DepositTable:
    """
    Table mapping (pair, depositor) -> contributed_amount_in.

    Notes:
    - Contributions are always non-negative.
    - Zero entries are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._records: Dict[Tuple[AssetPair, Identity], Amount] = {}

    def get(self, pair: AssetPair, depositor: Identity) -> Amount:
        """Get contribution for (pair, depositor). Returns 0 if not found."""
        return self._records.get((pair, depositor), 0)

    def add(self, pair: AssetPair, depositor: Identity, amount: Amount) -> None:
        """Add a non-negative contribution."""
        if amount < 0:
            raise ValueError(f"Contribution must be non-negative: {amount}")
        if amount == 0:
            return
        self._records[(pair, depositor)] = self.get(pair, depositor) + amount

    def get_all(self) -> Dict[Tuple[AssetPair, Identity], Amount]:
        """Return a copy of all records."""
        return dict(self._records)

    def __repr__(self) -> str:
        return f"DepositTable({len(self._records)} entries)"
