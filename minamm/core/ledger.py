"""
Pool ledger: deposits, swaps and quotes over directed pools.

This is the imperative shell around the pricing core in `cpmm.py`:
- validates inputs and the current pool state,
- moves funds through the `AssetTransferService` capability,
- commits reserve / record updates only after every transfer leg succeeded,
- publishes events once the operation has committed, before the pair lock
  is released, so each pair's events arrive in commit order.

Concurrency model:
- every deposit and swap holds its pair's lock from the pricing read to the
  reserve write, so operations on one pair are linearized;
- different pairs never contend;
- re-entering a pair from the thread that holds it (e.g. from a transfer
  callback) raises `ReentrantCall`.

Reads (`get_reserves`, `quote`) are lock-free: committed pool states are
replaced wholesale, never mutated in place.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import structlog

from ..state.balances import DEFAULT_CUSTODY_ACCOUNT, MAX_UINT256, Amount, Identity, is_uint
from ..state.deposits import DepositTable
from ..state.pools import AssetPair, PoolState
from .cpmm import quote_exact_in
from .errors import (
    ArithmeticOverflow,
    InsufficientLiquidity,
    InvalidAmount,
    PoolNotFound,
    ReentrantCall,
    SlippageExceeded,
    TransferFailed,
    Unauthorized,
)
from .events import EventBus, LedgerEvent, LiquidityAdded, Observer, TokensSwapped
from .fees import DEFAULT_FEE_RATE_PPT, validate_fee_rate
from .interfaces import AssetTransferService

logger = structlog.get_logger(__name__)

_EMPTY_POOL = PoolState()


def _require_pair(pair: AssetPair) -> AssetPair:
    if not isinstance(pair, AssetPair):
        raise TypeError(f"pair must be an AssetPair, got {type(pair).__name__}")
    if pair.is_degenerate:
        raise InvalidAmount(f"pair assets must differ: {pair}")
    return pair


def _require_amount(value: Amount, *, name: str, positive: bool = True) -> Amount:
    if not is_uint(value):
        raise InvalidAmount(f"{name} must be an unsigned int <= MAX_UINT256, got {value!r}")
    if positive and value == 0:
        raise InvalidAmount(f"{name} must be positive")
    return int(value)


def _require_identity(value: Identity, *, name: str) -> Identity:
    if not isinstance(value, str) or not value:
        raise TypeError(f"{name} must be a non-empty string")
    return value


def _checked_add(a: Amount, b: Amount, *, what: str) -> Amount:
    total = a + b
    if total > MAX_UINT256:
        raise ArithmeticOverflow(f"{what} would exceed MAX_UINT256")
    return total


class PoolLedger:
    """
    Owner of all pool and deposit-record state.

    Args:
        admin: Identity allowed to change the fee rate (fixed for the ledger's lifetime)
        transfers: AssetTransferService used to move funds in and out of custody
        fee_rate: Initial fee in parts-per-thousand
        custody_account: Account that holds pooled funds (the transfer
            service's operator account)
    """

    def __init__(
        self,
        admin: Identity,
        transfers: AssetTransferService,
        *,
        fee_rate: int = DEFAULT_FEE_RATE_PPT,
        custody_account: Identity = DEFAULT_CUSTODY_ACCOUNT,
    ) -> None:
        self._admin = _require_identity(admin, name="admin")
        self._custody = _require_identity(custody_account, name="custody_account")
        if not isinstance(transfers, AssetTransferService):
            raise TypeError(f"transfers must be an AssetTransferService, got {type(transfers).__name__}")
        self._transfers = transfers
        self._fee_rate = validate_fee_rate(fee_rate)
        self._config_lock = threading.Lock()

        self._pools: Dict[AssetPair, PoolState] = {}
        self._deposits = DepositTable()

        self._registry_lock = threading.Lock()
        self._pool_locks: Dict[AssetPair, threading.Lock] = {}
        self._in_flight: Dict[AssetPair, int] = {}

        self._events = EventBus()

    # -- configuration -------------------------------------------------------

    @property
    def admin(self) -> Identity:
        return self._admin

    @property
    def custody_account(self) -> Identity:
        return self._custody

    @property
    def fee_rate(self) -> int:
        return self._fee_rate

    def set_fee_rate(self, new_rate: int, caller: Identity) -> None:
        """
        Change the fee rate (parts-per-thousand) used by subsequent pricing.

        Raises:
            Unauthorized: caller is not the administrator
            FeeTooHigh: new_rate above the maximum
            InvalidAmount: new_rate is not a non-negative int
        """
        if caller != self._admin:
            logger.warning("set_fee_rate_unauthorized", caller=caller)
            raise Unauthorized(f"{caller!r} is not the administrator")
        rate = validate_fee_rate(new_rate)
        with self._config_lock:
            old = self._fee_rate
            self._fee_rate = rate
        logger.info("fee_rate_changed", old=old, new=rate)

    # -- events --------------------------------------------------------------

    @property
    def events(self) -> EventBus:
        return self._events

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._events.subscribe(observer)
        return lambda: self._events.unsubscribe(observer)

    # -- queries -------------------------------------------------------------

    def get_reserves(self, pair: AssetPair) -> Tuple[Amount, Amount, bool]:
        """Return (reserve_in, reserve_out, initialized); unknown pairs read as empty."""
        if not isinstance(pair, AssetPair):
            raise TypeError(f"pair must be an AssetPair, got {type(pair).__name__}")
        return self._pools.get(pair, _EMPTY_POOL).as_tuple()

    def pool(self, pair: AssetPair) -> PoolState:
        return self._pools.get(pair, _EMPTY_POOL).copy()

    def pairs(self) -> List[AssetPair]:
        return sorted(p for p, state in list(self._pools.items()) if state.initialized)

    def deposit_of(self, pair: AssetPair, depositor: Identity) -> Amount:
        return self._deposits.get(pair, depositor)

    def deposit_records(self) -> Dict[Tuple[AssetPair, Identity], Amount]:
        return self._deposits.get_all()

    def quote(self, pair: AssetPair, amount_in: Amount) -> Amount:
        """
        Output a swap of `amount_in` would produce right now.

        Raises:
            InvalidAmount: zero amount or identical assets
            PoolNotFound: pair has no liquidity
        """
        _require_pair(pair)
        amount_in = _require_amount(amount_in, name="amount_in")
        return quote_exact_in(self._pools.get(pair, _EMPTY_POOL), amount_in, self._fee_rate)

    # -- operations ----------------------------------------------------------

    def deposit(self, pair: AssetPair, amount_in: Amount, amount_out: Amount, depositor: Identity) -> None:
        """
        Add `amount_in` of `pair.asset_in` and `amount_out` of `pair.asset_out`
        to the pool for `pair`.

        No ratio check is made against existing reserves.

        Raises:
            InvalidAmount, ArithmeticOverflow, TransferFailed, ReentrantCall
        """
        _require_pair(pair)
        amount_in = _require_amount(amount_in, name="amount_in")
        amount_out = _require_amount(amount_out, name="amount_out")
        _require_identity(depositor, name="depositor")

        with self._pool_guard(pair):
            pool = self._pools.get(pair, _EMPTY_POOL)
            new_reserve_in = _checked_add(pool.reserve_in, amount_in, what="reserve_in")
            new_reserve_out = _checked_add(pool.reserve_out, amount_out, what="reserve_out")
            _checked_add(self._deposits.get(pair, depositor), amount_in, what="deposit record")

            self._leg(
                "deposit_in",
                self._transfers.transfer_from,
                pair.asset_in, depositor, self._custody, amount_in,
            )
            try:
                self._leg(
                    "deposit_out",
                    self._transfers.transfer_from,
                    pair.asset_out, depositor, self._custody, amount_out,
                )
            except TransferFailed:
                self._refund(pair.asset_in, depositor, amount_in, op="deposit")
                raise

            self._pools[pair] = PoolState(
                reserve_in=new_reserve_in,
                reserve_out=new_reserve_out,
                initialized=True,
            )
            self._deposits.add(pair, depositor, amount_in)

            logger.info(
                "liquidity_added",
                pair=str(pair),
                amount_in=amount_in,
                amount_out=amount_out,
                depositor=depositor,
            )
            self._publish(LiquidityAdded(pair=pair, amount_in=amount_in, amount_out=amount_out, depositor=depositor))

    def swap(self, pair: AssetPair, amount_in: Amount, min_amount_out: Amount, trader: Identity) -> Amount:
        """
        Swap exactly `amount_in` of `pair.asset_in` for `pair.asset_out`.

        Returns:
            amount_out paid to the trader

        Raises:
            InvalidAmount, PoolNotFound, SlippageExceeded, InsufficientLiquidity,
            ArithmeticOverflow, TransferFailed, ReentrantCall
        """
        _require_pair(pair)
        amount_in = _require_amount(amount_in, name="amount_in")
        min_amount_out = _require_amount(min_amount_out, name="min_amount_out", positive=False)
        _require_identity(trader, name="trader")

        with self._pool_guard(pair):
            pool = self._pools.get(pair, _EMPTY_POOL)
            if not pool.initialized:
                raise PoolNotFound(f"no liquidity for {pair}")

            fee_rate = self._fee_rate
            amount_out = quote_exact_in(pool, amount_in, fee_rate)

            if amount_out < min_amount_out:
                logger.info(
                    "swap_rejected_slippage",
                    pair=str(pair),
                    amount_in=amount_in,
                    amount_out=amount_out,
                    min_amount_out=min_amount_out,
                )
                raise SlippageExceeded(amount_out, min_amount_out)
            if amount_out >= pool.reserve_out:
                raise InsufficientLiquidity(
                    f"amount_out {amount_out} would drain reserve_out {pool.reserve_out}"
                )
            committed = PoolState(
                reserve_in=_checked_add(pool.reserve_in, amount_in, what="reserve_in"),
                reserve_out=pool.reserve_out - amount_out,
                initialized=True,
            )
            if committed.get_constant_product() < pool.get_constant_product():
                raise InsufficientLiquidity(f"swap would decrease k on {pair}")

            self._leg(
                "swap_in",
                self._transfers.transfer_from,
                pair.asset_in, trader, self._custody, amount_in,
            )
            try:
                self._leg(
                    "swap_out",
                    self._transfers.transfer,
                    pair.asset_out, trader, amount_out,
                )
            except TransferFailed:
                self._refund(pair.asset_in, trader, amount_in, op="swap")
                raise

            self._pools[pair] = committed

            logger.info(
                "swap_committed",
                pair=str(pair),
                amount_in=amount_in,
                amount_out=amount_out,
                fee_rate=fee_rate,
                trader=trader,
            )
            self._publish(TokensSwapped(pair=pair, amount_in=amount_in, amount_out=amount_out, trader=trader))
        return amount_out

    # -- internals -----------------------------------------------------------

    @contextmanager
    def _pool_guard(self, pair: AssetPair) -> Iterator[None]:
        me = threading.get_ident()
        with self._registry_lock:
            if self._in_flight.get(pair) == me:
                raise ReentrantCall(f"operation already in flight on {pair}")
            lock = self._pool_locks.get(pair)
            if lock is None:
                lock = threading.Lock()
                self._pool_locks[pair] = lock
        lock.acquire()
        with self._registry_lock:
            self._in_flight[pair] = me
        try:
            yield
        finally:
            with self._registry_lock:
                self._in_flight.pop(pair, None)
            lock.release()

    def _leg(self, leg: str, fn: Callable[..., Optional[bool]], *args) -> None:
        try:
            ok = fn(*args)
        except Exception as exc:
            logger.warning("transfer_failed", leg=leg, error=str(exc), error_type=type(exc).__name__)
            raise TransferFailed(f"{leg}: {exc}") from exc
        if ok is False:
            logger.warning("transfer_failed", leg=leg, error="rejected")
            raise TransferFailed(f"{leg}: transfer rejected")

    def _refund(self, asset: str, account: Identity, amount: Amount, *, op: str) -> None:
        try:
            ok = self._transfers.transfer(asset, account, amount)
        except Exception as exc:
            logger.error("refund_failed", op=op, asset=asset, account=account, amount=amount, error=str(exc))
            return
        if ok is False:
            logger.error("refund_failed", op=op, asset=asset, account=account, amount=amount, error="rejected")
            return
        logger.info("refund_completed", op=op, asset=asset, account=account, amount=amount)

    def _publish(self, event: LedgerEvent) -> None:
        self._events.publish(event)

    def __repr__(self) -> str:
        return f"PoolLedger(admin={self._admin!r}, fee_rate={self._fee_rate}, pools={len(self._pools)})"
