"""Ledger events and their delivery to observers.

Events are frozen dataclasses published after an operation has committed.
Delivery is fire-and-forget: an observer that raises is logged and skipped,
and never affects the operation that produced the event.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum, unique
from typing import Callable, List, Union

import structlog

from ..state.balances import Amount, Identity
from ..state.pools import AssetPair

logger = structlog.get_logger(__name__)


@unique
class EventKind(Enum):
    LIQUIDITY_ADDED = "LiquidityAdded"
    TOKENS_SWAPPED = "TokensSwapped"


@dataclass(frozen=True)
class LiquidityAdded:
    pair: AssetPair
    amount_in: Amount
    amount_out: Amount
    depositor: Identity

    kind = EventKind.LIQUIDITY_ADDED

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "pair": self.pair.to_dict(),
            "amount_in": self.amount_in,
            "amount_out": self.amount_out,
            "depositor": self.depositor,
        }


@dataclass(frozen=True)
class TokensSwapped:
    pair: AssetPair
    amount_in: Amount
    amount_out: Amount
    trader: Identity

    kind = EventKind.TOKENS_SWAPPED

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "pair": self.pair.to_dict(),
            "amount_in": self.amount_in,
            "amount_out": self.amount_out,
            "trader": self.trader,
        }


LedgerEvent = Union[LiquidityAdded, TokensSwapped]
Observer = Callable[[LedgerEvent], None]


class EventBus:
    """Synchronous publish/subscribe for ledger events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: List[Observer] = []

    def subscribe(self, observer: Observer) -> None:
        if not callable(observer):
            raise TypeError("observer must be callable")
        with self._lock:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                pass

    def publish(self, event: LedgerEvent) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(event)
            except Exception:
                logger.exception("observer_failed", event_kind=event.kind.value, pair=str(event.pair))

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)
