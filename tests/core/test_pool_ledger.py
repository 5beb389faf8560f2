# [TESTER] v1

from __future__ import annotations

from typing import List, Optional, Set, Tuple

import pytest

from minamm.core.errors import (
    ArithmeticOverflow,
    FeeTooHigh,
    InsufficientLiquidity,
    InvalidAmount,
    PoolNotFound,
    ReentrantCall,
    SlippageExceeded,
    TransferFailed,
    Unauthorized,
)
from minamm.core.events import EventKind, LiquidityAdded, TokensSwapped
from minamm.core.ledger import PoolLedger
from minamm.integration.snapshot import snapshot_from_ledger
from minamm.integration.transfers import InMemoryAssetTransferService, TransferError
from minamm.state.balances import DEFAULT_CUSTODY_ACCOUNT, MAX_UINT256
from minamm.state.pools import AssetPair

AB = AssetPair("A", "B")
BA = AssetPair("B", "A")


class FlakyTransfers(InMemoryAssetTransferService):
    """Fails the n-th (1-based) call of `transfer_from` / `transfer`."""

    def __init__(
        self,
        *,
        fail_transfer_from_on: Optional[Set[int]] = None,
        fail_transfer_on: Optional[Set[int]] = None,
        return_false: bool = False,
    ) -> None:
        super().__init__()
        self.fail_transfer_from_on = fail_transfer_from_on or set()
        self.fail_transfer_on = fail_transfer_on or set()
        self.return_false = return_false
        self.transfer_from_calls = 0
        self.transfer_calls = 0

    def transfer_from(self, asset, sender, recipient, amount):
        self.transfer_from_calls += 1
        if self.transfer_from_calls in self.fail_transfer_from_on:
            if self.return_false:
                return False
            raise TransferError("injected transfer_from failure")
        return super().transfer_from(asset, sender, recipient, amount)

    def transfer(self, asset, recipient, amount):
        self.transfer_calls += 1
        if self.transfer_calls in self.fail_transfer_on:
            if self.return_false:
                return False
            raise TransferError("injected transfer failure")
        return super().transfer(asset, recipient, amount)


def _funded_ledger(transfers: Optional[InMemoryAssetTransferService] = None, *, fee_rate: int = 3):
    transfers = transfers or InMemoryAssetTransferService()
    ledger = PoolLedger(admin="admin", transfers=transfers, fee_rate=fee_rate)
    transfers.mint("alice", "A", 10_000)
    transfers.mint("alice", "B", 10_000)
    transfers.mint("bob", "A", 10_000)
    transfers.mint("bob", "B", 10_000)
    return ledger, transfers


def test_deposit_then_swap_reference_scenario() -> None:
    ledger, transfers = _funded_ledger()

    ledger.deposit(AB, 1000, 2000, "alice")
    assert ledger.get_reserves(AB) == (1000, 2000, True)

    out = ledger.swap(AB, 100, 0, "bob")
    assert out == 180
    assert ledger.get_reserves(AB) == (1100, 1820, True)

    assert transfers.balance_of("A", "bob") == 10_000 - 100
    assert transfers.balance_of("B", "bob") == 10_000 + 180
    assert transfers.balance_of("A", DEFAULT_CUSTODY_ACCOUNT) == 1100
    assert transfers.balance_of("B", DEFAULT_CUSTODY_ACCOUNT) == 1820


def test_swap_below_min_out_fails_and_leaves_reserves() -> None:
    ledger, transfers = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")
    ledger.swap(AB, 100, 0, "bob")

    with pytest.raises(SlippageExceeded) as exc_info:
        ledger.swap(AB, 100, 181, "bob")
    assert exc_info.value.code == "SlippageExceeded"
    assert exc_info.value.min_amount_out == 181
    assert ledger.get_reserves(AB) == (1100, 1820, True)
    assert transfers.balance_of("A", "bob") == 10_000 - 100


def test_pools_are_directional() -> None:
    ledger, _ = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")

    assert ledger.get_reserves(BA) == (0, 0, False)
    with pytest.raises(PoolNotFound):
        ledger.swap(BA, 100, 0, "bob")
    with pytest.raises(PoolNotFound):
        ledger.quote(BA, 100)

    ledger.deposit(BA, 500, 500, "alice")
    assert ledger.get_reserves(BA) == (500, 500, True)
    assert ledger.get_reserves(AB) == (1000, 2000, True)
    assert ledger.pairs() == [AB, BA]


def test_reads_do_not_create_pools() -> None:
    ledger, _ = _funded_ledger()
    assert ledger.get_reserves(AB) == (0, 0, False)
    assert ledger.pairs() == []
    assert snapshot_from_ledger(ledger).data["pools"] == []


def test_deposits_accumulate_without_ratio_check() -> None:
    ledger, _ = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")
    ledger.deposit(AB, 1, 5000, "bob")
    ledger.deposit(AB, 300, 1, "alice")

    assert ledger.get_reserves(AB) == (1301, 7001, True)
    assert ledger.deposit_of(AB, "alice") == 1300
    assert ledger.deposit_of(AB, "bob") == 1
    assert ledger.deposit_of(BA, "alice") == 0
    assert ledger.deposit_records() == {(AB, "alice"): 1300, (AB, "bob"): 1}


def test_zero_output_swap_in_deep_pool() -> None:
    transfers = InMemoryAssetTransferService()
    ledger = PoolLedger(admin="admin", transfers=transfers)
    transfers.mint("alice", "A", 10**18)
    transfers.mint("alice", "B", 1)
    transfers.mint("bob", "A", 2000)
    ledger.deposit(AB, 10**18, 1, "alice")

    assert ledger.quote(AB, 1000) == 0
    with pytest.raises(SlippageExceeded):
        ledger.swap(AB, 1000, 1, "bob")

    assert ledger.swap(AB, 1000, 0, "bob") == 0
    assert ledger.get_reserves(AB) == (10**18 + 1000, 1, True)


@pytest.mark.parametrize(
    "pair,amount_in,amount_out",
    [
        (AssetPair("A", "A"), 1, 1),
        (AB, 0, 1),
        (AB, 1, 0),
        (AB, -5, 1),
        (AB, True, 1),
        (AB, 1, MAX_UINT256 + 1),
    ],
)
def test_deposit_rejects_invalid_amounts(pair: AssetPair, amount_in: int, amount_out: int) -> None:
    ledger, transfers = _funded_ledger()
    with pytest.raises(InvalidAmount):
        ledger.deposit(pair, amount_in, amount_out, "alice")
    assert transfers.balance_of("A", "alice") == 10_000
    assert ledger.pairs() == []


def test_swap_and_quote_reject_invalid_amounts() -> None:
    ledger, _ = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")

    with pytest.raises(InvalidAmount):
        ledger.swap(AB, 0, 0, "bob")
    with pytest.raises(InvalidAmount):
        ledger.swap(AB, 10, -1, "bob")
    with pytest.raises(InvalidAmount):
        ledger.swap(AssetPair("A", "A"), 10, 0, "bob")
    with pytest.raises(InvalidAmount):
        ledger.quote(AB, 0)
    with pytest.raises(InvalidAmount):
        ledger.quote(AssetPair("B", "B"), 10)


def test_swap_on_uninitialized_pool() -> None:
    ledger, _ = _funded_ledger()
    with pytest.raises(PoolNotFound):
        ledger.swap(AB, 100, 0, "bob")


def test_deposit_overflow_is_rejected_before_any_transfer() -> None:
    transfers = InMemoryAssetTransferService()
    ledger = PoolLedger(admin="admin", transfers=transfers)
    transfers.mint("alice", "A", MAX_UINT256)
    transfers.mint("alice", "B", 2)
    ledger.deposit(AB, MAX_UINT256, 1, "alice")

    transfers.mint("alice", "A", 1)
    with pytest.raises(ArithmeticOverflow):
        ledger.deposit(AB, 1, 1, "alice")

    assert ledger.get_reserves(AB) == (MAX_UINT256, 1, True)
    assert transfers.balance_of("A", "alice") == 1
    assert transfers.balance_of("B", "alice") == 1


@pytest.mark.parametrize("return_false", [False, True])
def test_deposit_second_leg_failure_is_atomic(return_false: bool) -> None:
    transfers = FlakyTransfers(fail_transfer_from_on={4}, return_false=return_false)
    ledger, _ = _funded_ledger(transfers)
    ledger.deposit(AB, 1000, 2000, "alice")  # transfer_from calls 1 and 2

    before = snapshot_from_ledger(ledger)
    with pytest.raises(TransferFailed):
        ledger.deposit(AB, 500, 700, "bob")  # call 3 succeeds, call 4 fails

    after = snapshot_from_ledger(ledger)
    assert after.canonical_bytes() == before.canonical_bytes()
    assert after.commitment_hex() == before.commitment_hex()
    assert ledger.deposit_of(AB, "bob") == 0
    assert ledger.get_reserves(AB) == (1000, 2000, True)
    # The completed first leg was refunded.
    assert transfers.balance_of("A", "bob") == 10_000
    assert transfers.balance_of("B", "bob") == 10_000
    assert transfers.balance_of("A", DEFAULT_CUSTODY_ACCOUNT) == 1000


def test_deposit_first_leg_failure_is_atomic() -> None:
    transfers = FlakyTransfers(fail_transfer_from_on={1})
    ledger, _ = _funded_ledger(transfers)

    with pytest.raises(TransferFailed) as exc_info:
        ledger.deposit(AB, 1000, 2000, "alice")
    assert isinstance(exc_info.value.__cause__, TransferError)
    assert ledger.get_reserves(AB) == (0, 0, False)
    assert transfers.transfer_calls == 0


def test_swap_second_leg_failure_is_atomic() -> None:
    transfers = FlakyTransfers(fail_transfer_on={1})
    ledger, _ = _funded_ledger(transfers)
    ledger.deposit(AB, 1000, 2000, "alice")
    before = snapshot_from_ledger(ledger)

    with pytest.raises(TransferFailed):
        ledger.swap(AB, 100, 0, "bob")

    assert snapshot_from_ledger(ledger).commitment_hex() == before.commitment_hex()
    assert ledger.get_reserves(AB) == (1000, 2000, True)
    assert transfers.balance_of("A", "bob") == 10_000
    assert transfers.balance_of("B", "bob") == 10_000

    # The next swap goes through and prices against untouched reserves.
    assert ledger.swap(AB, 100, 0, "bob") == 180


def test_swap_refund_failure_still_raises_and_keeps_reserves() -> None:
    transfers = FlakyTransfers(fail_transfer_on={1, 2})
    ledger, _ = _funded_ledger(transfers)
    ledger.deposit(AB, 1000, 2000, "alice")

    with pytest.raises(TransferFailed):
        ledger.swap(AB, 100, 0, "bob")
    assert ledger.get_reserves(AB) == (1000, 2000, True)
    assert transfers.transfer_calls == 2


def test_swap_with_insufficient_trader_balance() -> None:
    ledger, transfers = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")
    with pytest.raises(TransferFailed):
        ledger.swap(AB, 10_001, 0, "bob")
    assert ledger.get_reserves(AB) == (1000, 2000, True)
    assert transfers.balance_of("A", "bob") == 10_000


def test_set_fee_rate_authorization() -> None:
    ledger, _ = _funded_ledger()

    with pytest.raises(Unauthorized):
        ledger.set_fee_rate(5, "mallory")
    assert ledger.fee_rate == 3

    with pytest.raises(FeeTooHigh):
        ledger.set_fee_rate(11, "admin")
    assert ledger.fee_rate == 3

    with pytest.raises(InvalidAmount):
        ledger.set_fee_rate(-1, "admin")

    ledger.set_fee_rate(0, "admin")
    assert ledger.fee_rate == 0


def test_unauthorized_is_checked_before_bounds() -> None:
    ledger, _ = _funded_ledger()
    with pytest.raises(Unauthorized):
        ledger.set_fee_rate(11, "mallory")


def test_new_fee_rate_applies_to_subsequent_pricing() -> None:
    ledger, _ = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")
    assert ledger.quote(AB, 100) == 180

    ledger.set_fee_rate(0, "admin")
    assert ledger.quote(AB, 100) == 181
    assert ledger.swap(AB, 100, 181, "bob") == 181


def test_constructor_validates_configuration() -> None:
    transfers = InMemoryAssetTransferService()
    with pytest.raises(FeeTooHigh):
        PoolLedger(admin="admin", transfers=transfers, fee_rate=11)
    with pytest.raises(TypeError):
        PoolLedger(admin="", transfers=transfers)
    with pytest.raises(TypeError):
        PoolLedger(admin="admin", transfers=None)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        PoolLedger(admin="admin", transfers=object())  # type: ignore[arg-type]


def test_events_are_published_in_order_after_commit() -> None:
    ledger, _ = _funded_ledger()
    seen: List[object] = []
    unsubscribe = ledger.subscribe(seen.append)

    ledger.deposit(AB, 1000, 2000, "alice")
    ledger.swap(AB, 100, 0, "bob")
    with pytest.raises(SlippageExceeded):
        ledger.swap(AB, 100, 10_000, "bob")

    assert seen == [
        LiquidityAdded(pair=AB, amount_in=1000, amount_out=2000, depositor="alice"),
        TokensSwapped(pair=AB, amount_in=100, amount_out=180, trader="bob"),
    ]
    assert seen[0].kind is EventKind.LIQUIDITY_ADDED
    assert seen[1].to_dict() == {
        "kind": "TokensSwapped",
        "pair": {"asset_in": "A", "asset_out": "B"},
        "amount_in": 100,
        "amount_out": 180,
        "trader": "bob",
    }

    unsubscribe()
    ledger.swap(AB, 10, 0, "bob")
    assert len(seen) == 2


def test_failing_observer_does_not_affect_operation() -> None:
    ledger, _ = _funded_ledger()
    calls: List[Tuple[str, int]] = []

    def broken(_event) -> None:
        raise RuntimeError("observer bug")

    ledger.subscribe(broken)
    ledger.subscribe(lambda e: calls.append((e.kind.value, e.amount_in)))

    ledger.deposit(AB, 1000, 2000, "alice")
    assert ledger.swap(AB, 100, 0, "bob") == 180
    assert calls == [("LiquidityAdded", 1000), ("TokensSwapped", 100)]


def _custody_matches_reserves(ledger: PoolLedger, transfers: InMemoryAssetTransferService) -> None:
    reserve_in, reserve_out, _ = ledger.get_reserves(AB)
    assert transfers.balance_of("A", DEFAULT_CUSTODY_ACCOUNT) == reserve_in
    assert transfers.balance_of("B", DEFAULT_CUSTODY_ACCOUNT) == reserve_out


@pytest.mark.parametrize("leg", ["transfer_from", "transfer"])
def test_raising_transfer_hook_does_not_undo_a_completed_leg(leg: str) -> None:
    ledger, transfers = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")
    raised: List[BaseException] = []

    def hook(kind, asset, sender, recipient, amount) -> None:
        if kind != leg or raised:
            return
        try:
            ledger.swap(AB, 50, 0, "bob")
        except ReentrantCall as exc:
            raised.append(exc)
            raise

    transfers.on_transfer = hook
    assert ledger.swap(AB, 100, 0, "bob") == 180

    assert len(raised) == 1
    assert ledger.get_reserves(AB) == (1100, 1820, True)
    assert transfers.balance_of("A", "bob") == 9_900
    assert transfers.balance_of("B", "bob") == 10_180
    _custody_matches_reserves(ledger, transfers)


def test_raising_transfer_hook_during_deposit_keeps_custody_in_sync() -> None:
    ledger, transfers = _funded_ledger()

    def hook(kind, asset, sender, recipient, amount) -> None:
        raise RuntimeError("hook bug")

    transfers.on_transfer = hook
    ledger.deposit(AB, 1000, 2000, "alice")

    assert ledger.get_reserves(AB) == (1000, 2000, True)
    assert ledger.deposit_of(AB, "alice") == 1000
    _custody_matches_reserves(ledger, transfers)


@pytest.mark.parametrize("forced_out", [2000, 2001, 1999])
def test_swap_pricing_that_would_break_the_pool_is_rejected(
    monkeypatch: pytest.MonkeyPatch, forced_out: int
) -> None:
    ledger, transfers = _funded_ledger()
    ledger.deposit(AB, 1000, 2000, "alice")
    before = snapshot_from_ledger(ledger)

    # 2000 and 2001 drain the output reserve; 1999 leaves k below its prior value.
    monkeypatch.setattr("minamm.core.ledger.quote_exact_in", lambda pool, amount_in, fee: forced_out)
    with pytest.raises(InsufficientLiquidity):
        ledger.swap(AB, 100, 0, "bob")

    assert snapshot_from_ledger(ledger).commitment_hex() == before.commitment_hex()
    assert transfers.balance_of("A", "bob") == 10_000
    assert transfers.balance_of("B", "bob") == 10_000
    _custody_matches_reserves(ledger, transfers)


def test_swap_overflowing_reserve_in_is_rejected_before_any_transfer() -> None:
    ledger, transfers = _funded_ledger()
    transfers.mint("whale", "A", MAX_UINT256 - 10)
    transfers.mint("whale", "B", 1000)
    ledger.deposit(AB, MAX_UINT256 - 10, 1000, "whale")

    # Dust against a reserve this deep prices to zero, so slippage passes.
    assert ledger.quote(AB, 100) == 0
    with pytest.raises(ArithmeticOverflow):
        ledger.swap(AB, 100, 0, "bob")

    assert ledger.get_reserves(AB) == (MAX_UINT256 - 10, 1000, True)
    assert transfers.balance_of("A", "bob") == 10_000
    assert transfers.balance_of("B", "bob") == 10_000
    _custody_matches_reserves(ledger, transfers)
