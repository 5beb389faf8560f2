"""
Ledger state snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / audit.
- Independent of dict insertion order.
- Explicit versioning.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict

from ..core.ledger import PoolLedger
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex


LEDGER_SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Deterministic, versioned snapshot of a PoolLedger.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


def snapshot_from_ledger(ledger: PoolLedger, *, version: int = LEDGER_SNAPSHOT_VERSION) -> LedgerSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    pools_entries = []
    for pair in ledger.pairs():
        pool = ledger.pool(pair)
        pools_entries.append(
            {
                "asset_in": pair.asset_in,
                "asset_out": pair.asset_out,
                "reserve_in": int(pool.reserve_in),
                "reserve_out": int(pool.reserve_out),
                "initialized": bool(pool.initialized),
            }
        )

    deposit_entries = [
        {
            "asset_in": pair.asset_in,
            "asset_out": pair.asset_out,
            "depositor": depositor,
            "contributed_amount_in": int(amount),
        }
        for (pair, depositor), amount in ledger.deposit_records().items()
    ]
    deposit_entries.sort(key=lambda e: (e["asset_in"], e["asset_out"], e["depositor"]))

    data = {
        "version": version,
        "admin": ledger.admin,
        "custody_account": ledger.custody_account,
        "fee_rate": int(ledger.fee_rate),
        "pools": pools_entries,
        "deposits": deposit_entries,
    }
    return LedgerSnapshot(version=version, data=data)
