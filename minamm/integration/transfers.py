"""
In-memory asset transfers for the pool ledger.

`InMemoryAssetTransferService` implements `AssetTransferService` (see
`minamm.core.interfaces`). It is the reference implementation backed by a
`BalanceTable`; it is what the offline tool and the tests run against.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional, Tuple

import structlog

from ..core.interfaces import AssetTransferService
from ..state.balances import DEFAULT_CUSTODY_ACCOUNT, AssetId, Amount, BalanceTable, Identity, is_uint

logger = structlog.get_logger(__name__)


class TransferError(Exception):
    """Raised by the in-memory service when a transfer cannot be performed."""


# (kind, asset, sender, recipient, amount), called after a leg completes
TransferHook = Callable[[str, AssetId, Identity, Identity, Amount], None]


class InMemoryAssetTransferService:
    """
    In-process ledger of asset balances.

    Args:
        operator: Account debited by `transfer` (the pool ledger's custody account)
        require_allowance: If True, `transfer_from` consumes an ERC-20 style
            allowance granted through `approve`
        on_transfer: Optional hook invoked after each completed leg, outside
            the service lock. Exceptions it raises are logged, and the leg
            still counts as completed.
    """

    def __init__(
        self,
        operator: Identity = DEFAULT_CUSTODY_ACCOUNT,
        *,
        require_allowance: bool = False,
        on_transfer: Optional[TransferHook] = None,
    ) -> None:
        if not isinstance(operator, str) or not operator:
            raise ValueError("operator must be a non-empty string")
        self.operator = operator
        self.require_allowance = require_allowance
        self.on_transfer = on_transfer
        self._balances = BalanceTable()
        self._allowances: Dict[Tuple[Identity, AssetId], Amount] = {}
        self._lock = threading.Lock()

    @property
    def balances(self) -> BalanceTable:
        return self._balances

    def mint(self, account: Identity, asset: AssetId, amount: Amount) -> None:
        """Credit `amount` of `asset` out of thin air (funding for tests and demos)."""
        self._require_amount(amount)
        with self._lock:
            self._balances.add(account, asset, amount)

    def approve(self, owner: Identity, asset: AssetId, amount: Amount) -> None:
        """Set how much of `asset` the operator may pull from `owner`."""
        self._require_amount(amount)
        with self._lock:
            if amount == 0:
                self._allowances.pop((owner, asset), None)
            else:
                self._allowances[(owner, asset)] = amount

    def allowance(self, owner: Identity, asset: AssetId) -> Amount:
        with self._lock:
            return self._allowances.get((owner, asset), 0)

    def balance_of(self, asset: AssetId, account: Identity) -> Amount:
        with self._lock:
            return self._balances.get(account, asset)

    def transfer_from(self, asset: AssetId, sender: Identity, recipient: Identity, amount: Amount) -> bool:
        self._require_amount(amount)
        with self._lock:
            if self.require_allowance:
                allowed = self._allowances.get((sender, asset), 0)
                if allowed < amount:
                    raise TransferError(f"allowance exceeded: {sender} approved {allowed} {asset}, needs {amount}")
            self._move(asset, sender, recipient, amount)
            if self.require_allowance:
                remaining = self._allowances[(sender, asset)] - amount
                if remaining == 0:
                    del self._allowances[(sender, asset)]
                else:
                    self._allowances[(sender, asset)] = remaining
        logger.debug("transfer_from", asset=asset, sender=sender, recipient=recipient, amount=amount)
        self._notify("transfer_from", asset, sender, recipient, amount)
        return True

    def transfer(self, asset: AssetId, recipient: Identity, amount: Amount) -> bool:
        self._require_amount(amount)
        with self._lock:
            self._move(asset, self.operator, recipient, amount)
        logger.debug("transfer", asset=asset, sender=self.operator, recipient=recipient, amount=amount)
        self._notify("transfer", asset, self.operator, recipient, amount)
        return True

    def _notify(self, kind: str, asset: AssetId, sender: Identity, recipient: Identity, amount: Amount) -> None:
        # Runs after the move; a failing hook never fails the leg.
        if self.on_transfer is None:
            return
        try:
            self.on_transfer(kind, asset, sender, recipient, amount)
        except Exception:
            logger.exception("transfer_hook_failed", kind=kind, asset=asset, sender=sender, recipient=recipient, amount=amount)

    def _move(self, asset: AssetId, sender: Identity, recipient: Identity, amount: Amount) -> None:
        available = self._balances.get(sender, asset)
        if available < amount:
            raise TransferError(f"insufficient balance: {sender} holds {available} {asset}, needs {amount}")
        self._balances.subtract(sender, asset, amount)
        try:
            self._balances.add(recipient, asset, amount)
        except ValueError as exc:
            self._balances.add(sender, asset, amount)
            raise TransferError(str(exc)) from exc

    @staticmethod
    def _require_amount(amount: Amount) -> None:
        if not is_uint(amount):
            raise TransferError(f"amount must be a non-negative int, got {amount!r}")

    def __repr__(self) -> str:
        return f"InMemoryAssetTransferService(operator={self.operator!r}, {self._balances!r})"
