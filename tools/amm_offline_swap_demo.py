#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from minamm.integration.amm_engine import apply_operation
from minamm.integration.config import build_ledger, load_config
from minamm.integration.snapshot import snapshot_from_ledger
from minamm.integration.transfers import InMemoryAssetTransferService
from minamm.state.pools import AssetPair


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Deposit into a directed pool and swap against it, offline.")
    ap.add_argument("--config", type=Path, default=None, help="optional YAML ledger config")
    ap.add_argument("--asset-in", default="A")
    ap.add_argument("--asset-out", default="B")
    ap.add_argument("--deposit-in", type=int, default=1000)
    ap.add_argument("--deposit-out", type=int, default=2000)
    ap.add_argument("--swap-in", type=int, default=100)
    ap.add_argument("--min-out", type=int, default=0)
    ap.add_argument("--json", action="store_true", help="print the final snapshot as JSON")
    args = ap.parse_args(argv)

    config = load_config(args.config)
    transfers = InMemoryAssetTransferService(operator=config.custody_account)
    ledger = build_ledger(config, transfers, setup_logging=True)

    lp = "alice"
    trader = "bob"
    pair = AssetPair(args.asset_in, args.asset_out)
    transfers.mint(lp, pair.asset_in, args.deposit_in)
    transfers.mint(lp, pair.asset_out, args.deposit_out)
    transfers.mint(trader, pair.asset_in, args.swap_in)

    res = apply_operation(
        ledger,
        {
            "kind": "DEPOSIT",
            "asset_in": pair.asset_in,
            "asset_out": pair.asset_out,
            "amount_in": args.deposit_in,
            "amount_out": args.deposit_out,
            "sender": lp,
        },
    )
    if not res.ok:
        print(f"[offline-demo] FAIL (deposit): {res.code}: {res.error}")
        return 1
    print(f"[offline-demo] reserves after deposit: {ledger.get_reserves(pair)}")

    quote = apply_operation(
        ledger,
        {"kind": "QUOTE", "asset_in": pair.asset_in, "asset_out": pair.asset_out, "amount_in": args.swap_in},
    )
    print(f"[offline-demo] quote for {args.swap_in} {pair.asset_in}: {quote.value} {pair.asset_out} (fee_rate={ledger.fee_rate})")

    res = apply_operation(
        ledger,
        {
            "kind": "SWAP",
            "asset_in": pair.asset_in,
            "asset_out": pair.asset_out,
            "amount_in": args.swap_in,
            "min_amount_out": args.min_out,
            "sender": trader,
        },
    )
    if not res.ok:
        print(f"[offline-demo] FAIL (swap): {res.code}: {res.error}")
        print(f"[offline-demo] reserves unchanged: {ledger.get_reserves(pair)}")
        return 1

    print(f"[offline-demo] swap paid out: {res.value} {pair.asset_out}")
    print(f"[offline-demo] reserves after swap: {ledger.get_reserves(pair)}")
    print(
        f"[offline-demo] trader balances: "
        f"{pair.asset_in}={transfers.balance_of(pair.asset_in, trader)} "
        f"{pair.asset_out}={transfers.balance_of(pair.asset_out, trader)}"
    )

    snap = snapshot_from_ledger(ledger)
    print(f"[offline-demo] snapshot commitment: {snap.commitment_hex()}")
    if args.json:
        print(json.dumps(snap.data, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
