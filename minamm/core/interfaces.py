"""
Capabilities the pool ledger depends on.

The ledger never moves value itself. It calls an `AssetTransferService`:
- `transfer_from(asset, sender, recipient, amount)` pulls funds from a user
  into custody,
- `transfer(asset, recipient, amount)` pays out of the service operator's
  account (the ledger's custody account),
- `balance_of(asset, account)` is a read-only balance query.

A leg fails when the call raises or returns `False`; a leg that fails must
not have moved any funds.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ..state.balances import AssetId, Amount, Identity


@runtime_checkable
class AssetTransferService(Protocol):
    def transfer_from(self, asset: AssetId, sender: Identity, recipient: Identity, amount: Amount) -> Optional[bool]:
        ...

    def transfer(self, asset: AssetId, recipient: Identity, amount: Amount) -> Optional[bool]:
        ...

    def balance_of(self, asset: AssetId, account: Identity) -> Amount:
        ...
