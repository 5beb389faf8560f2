"""
Ledger execution adapter.

Wraps `PoolLedger` calls in a typed result so callers at the boundary never
see exceptions for expected failures:
- parse the operation mapping,
- dispatch it to the ledger,
- surface success as `ok=True` with the operation's value, or failure as
  `ok=False` with the error message and its stable `code`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

import structlog

from ..core.errors import AmmError
from ..core.ledger import PoolLedger
from .operations import (
    DepositOp,
    Operation,
    OperationParseError,
    QuoteOp,
    SetFeeRateOp,
    SwapOp,
    parse_operation,
)

logger = structlog.get_logger(__name__)

INVALID_OPERATION = "InvalidOperation"


@dataclass(frozen=True)
class AmmTxResult:
    ok: bool
    value: Optional[int] = None
    error: Optional[str] = None
    code: Optional[str] = None


def execute(ledger: PoolLedger, op: Operation) -> Optional[int]:
    """
    Run a parsed operation against `ledger`.

    Returns amount_out for SWAP / QUOTE, None otherwise. Ledger errors propagate.
    """
    if isinstance(op, DepositOp):
        ledger.deposit(op.pair, op.amount_in, op.amount_out, op.sender)
        return None
    if isinstance(op, SwapOp):
        return ledger.swap(op.pair, op.amount_in, op.min_amount_out, op.sender)
    if isinstance(op, QuoteOp):
        return ledger.quote(op.pair, op.amount_in)
    if isinstance(op, SetFeeRateOp):
        ledger.set_fee_rate(op.fee_rate, op.sender)
        return None
    raise TypeError(f"unsupported operation: {type(op).__name__}")


def apply_operation(ledger: PoolLedger, operation: Mapping[str, Any]) -> AmmTxResult:
    try:
        op = parse_operation(operation)
    except OperationParseError as exc:
        logger.info("operation_rejected", code=INVALID_OPERATION, error=str(exc))
        return AmmTxResult(ok=False, error=str(exc), code=INVALID_OPERATION)

    try:
        value = execute(ledger, op)
    except AmmError as exc:
        logger.info("operation_failed", kind=op.kind.value, code=exc.code, error=str(exc))
        return AmmTxResult(ok=False, error=str(exc), code=exc.code)
    return AmmTxResult(ok=True, value=value)


def apply_operations(ledger: PoolLedger, operations: Iterable[Mapping[str, Any]]) -> List[AmmTxResult]:
    """
    Apply operations in order. Each one is independent: a failure does not
    stop or undo the others.
    """
    return [apply_operation(ledger, op) for op in operations]
