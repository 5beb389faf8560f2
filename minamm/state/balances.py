"""
Multi-asset balance tracking.

Implements BalanceTable[Identity, AssetId] -> Amount
"""

from typing import Dict, Tuple


# Type aliases
Identity = str  # account / caller identifier
AssetId = str  # asset identifier (opaque string)
Amount = int  # Non-negative integer, bounded by MAX_UINT256

# Upper bound for every amount and reserve held by the engine.
MAX_UINT256 = (1 << 256) - 1

# Account that holds pooled reserves on behalf of the ledger.
DEFAULT_CUSTODY_ACCOUNT = "minamm:custody"


def is_uint(value: object) -> bool:
    """True for ints (not bools) in [0, MAX_UINT256]."""
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    return 0 <= value <= MAX_UINT256


class BalanceTable:
    """
    Balance table mapping (account, asset) -> amount.

    Note: this class stores balances in a plain dict. Callers should sort keys
    explicitly at serialization / hashing boundaries.
    """

    def __init__(self):
        self._balances: Dict[Tuple[Identity, AssetId], Amount] = {}

    def get(self, account: Identity, asset: AssetId) -> Amount:
        """Get balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def set(self, account: Identity, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (account, asset).

        Raises:
            ValueError: If amount is negative or exceeds MAX_UINT256
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount > MAX_UINT256:
            raise ValueError(f"Balance exceeds MAX_UINT256: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def add(self, account: Identity, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(account, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, asset, new_balance)

    def subtract(self, account: Identity, asset: AssetId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, asset, -delta)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
