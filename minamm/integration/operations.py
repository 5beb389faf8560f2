"""
Operation parsing for the pool ledger.

Requests arrive as plain mappings (e.g. decoded JSON):

    {"kind": "DEPOSIT", "asset_in": "A", "asset_out": "B",
     "amount_in": 1000, "amount_out": 2000, "sender": "alice"}
    {"kind": "SWAP", "asset_in": "A", "asset_out": "B",
     "amount_in": 100, "min_amount_out": 0, "sender": "bob"}
    {"kind": "QUOTE", "asset_in": "A", "asset_out": "B", "amount_in": 100}
    {"kind": "SET_FEE_RATE", "fee_rate": 5, "sender": "admin"}

Parsing checks shape and types only; amount semantics (zero, identical
assets, bounds) are enforced by the ledger itself.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

from ..state.pools import AssetPair


class OperationKind(Enum):
    DEPOSIT = "DEPOSIT"
    SWAP = "SWAP"
    QUOTE = "QUOTE"
    SET_FEE_RATE = "SET_FEE_RATE"


class OperationParseError(ValueError):
    """Raised when an operation mapping is malformed."""


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise OperationParseError(f"{name} must be a string")
    if non_empty and not value:
        raise OperationParseError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise OperationParseError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise OperationParseError(f"{name} must be an int")
    return int(value)


def _require_fields(data: Mapping, *names: str) -> None:
    missing = [n for n in names if n not in data]
    if missing:
        raise OperationParseError(f"missing fields: {', '.join(missing)}")


def _parse_pair(data: Mapping) -> AssetPair:
    return AssetPair(
        asset_in=_require_str(data["asset_in"], name="asset_in"),
        asset_out=_require_str(data["asset_out"], name="asset_out"),
    )


@dataclass(frozen=True)
class DepositOp:
    pair: AssetPair
    amount_in: int
    amount_out: int
    sender: str

    kind = OperationKind.DEPOSIT


@dataclass(frozen=True)
class SwapOp:
    pair: AssetPair
    amount_in: int
    min_amount_out: int
    sender: str

    kind = OperationKind.SWAP


@dataclass(frozen=True)
class QuoteOp:
    pair: AssetPair
    amount_in: int

    kind = OperationKind.QUOTE


@dataclass(frozen=True)
class SetFeeRateOp:
    fee_rate: int
    sender: str

    kind = OperationKind.SET_FEE_RATE


Operation = Union[DepositOp, SwapOp, QuoteOp, SetFeeRateOp]


def parse_operation(data: Mapping) -> Operation:
    """
    Parse one operation mapping.

    Raises:
        OperationParseError: If the mapping structure is invalid
    """
    if not isinstance(data, Mapping):
        raise OperationParseError(f"operation must be an object, got {type(data).__name__}")
    _require_fields(data, "kind")
    kind_raw = _require_str(data["kind"], name="kind").strip().upper()
    try:
        kind = OperationKind(kind_raw)
    except ValueError as exc:
        raise OperationParseError(f"unsupported kind: {kind_raw!r}") from exc

    try:
        if kind is OperationKind.DEPOSIT:
            _require_fields(data, "asset_in", "asset_out", "amount_in", "amount_out", "sender")
            return DepositOp(
                pair=_parse_pair(data),
                amount_in=_require_int(data["amount_in"], name="amount_in"),
                amount_out=_require_int(data["amount_out"], name="amount_out"),
                sender=_require_str(data["sender"], name="sender"),
            )
        if kind is OperationKind.SWAP:
            _require_fields(data, "asset_in", "asset_out", "amount_in", "sender")
            return SwapOp(
                pair=_parse_pair(data),
                amount_in=_require_int(data["amount_in"], name="amount_in"),
                min_amount_out=_require_int(data.get("min_amount_out", 0), name="min_amount_out"),
                sender=_require_str(data["sender"], name="sender"),
            )
        if kind is OperationKind.QUOTE:
            _require_fields(data, "asset_in", "asset_out", "amount_in")
            return QuoteOp(
                pair=_parse_pair(data),
                amount_in=_require_int(data["amount_in"], name="amount_in"),
            )
        _require_fields(data, "fee_rate", "sender")
        return SetFeeRateOp(
            fee_rate=_require_int(data["fee_rate"], name="fee_rate"),
            sender=_require_str(data["sender"], name="sender"),
        )
    except TypeError as exc:
        # AssetPair rejects non-string / empty assets with TypeError.
        raise OperationParseError(str(exc)) from exc


def operation_to_dict(op: Operation) -> Dict[str, Any]:
    """Inverse of `parse_operation`."""
    out: Dict[str, Any] = {"kind": op.kind.value}
    if isinstance(op, (DepositOp, SwapOp, QuoteOp)):
        out.update(op.pair.to_dict())
        out["amount_in"] = op.amount_in
    if isinstance(op, DepositOp):
        out["amount_out"] = op.amount_out
    if isinstance(op, SwapOp):
        out["min_amount_out"] = op.min_amount_out
    if isinstance(op, SetFeeRateOp):
        out["fee_rate"] = op.fee_rate
    if isinstance(op, (DepositOp, SwapOp, SetFeeRateOp)):
        out["sender"] = op.sender
    return out
