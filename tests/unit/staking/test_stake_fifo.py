"""Tests for FIFO stake resolution — pure functions."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from stakeledger.domain.enums.staking import TransferDirection
from stakeledger.domain.models.staking import RawTransferEvent, WalletLedger
from stakeledger.staking.fifo import fifo_resolve, resolve_stakes, resolve_wallets
from stakeledger.staking.lock_status import to_ms

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
NOW = T0 + timedelta(days=30)
MINT = "Mint111"


def _event(direction: str, amount: str, day: float, wallet: str = "WalletA", sig: str = "") -> RawTransferEvent:
    return RawTransferEvent(
        direction=TransferDirection(direction),
        counterparty_wallet=wallet,
        amount=Decimal(amount),
        timestamp_ms=to_ms(T0 + timedelta(days=day)),
        transaction_id=sig,
    )


def _ledger(*events: RawTransferEvent, wallet: str = "WalletA") -> WalletLedger:
    ledger = WalletLedger(wallet_address=wallet)
    for e in events:
        ledger.record(e)
    return ledger


class TestFifoResolve:
    def test_withdrawal_consumes_oldest_first(self):
        ledger = _ledger(
            _event("DEPOSIT", "100", 0, sig="d1"),
            _event("DEPOSIT", "50", 1, sig="d2"),
            _event("WITHDRAWAL", "120", 2, sig="w1"),
        )
        active = fifo_resolve(ledger)

        assert len(active) == 1
        assert active[0].amount == Decimal("30")
        assert active[0].timestamp_ms == to_ms(T0 + timedelta(days=1))
        assert active[0].signature == "d2"

    def test_full_withdrawal_drains_exactly(self):
        ledger = _ledger(_event("DEPOSIT", "100", 0), _event("WITHDRAWAL", "100", 5))
        assert fifo_resolve(ledger) == []

    def test_only_deposits(self):
        ledger = _ledger(_event("DEPOSIT", "10", 0), _event("DEPOSIT", "20", 1))
        active = fifo_resolve(ledger)

        assert [d.amount for d in active] == [Decimal("10"), Decimal("20")]

    def test_partial_withdrawal_keeps_deposit_date(self):
        ledger = _ledger(_event("DEPOSIT", "100", 0), _event("WITHDRAWAL", "40", 3))
        active = fifo_resolve(ledger)

        assert len(active) == 1
        assert active[0].amount == Decimal("60")
        assert active[0].timestamp_ms == to_ms(T0)

    def test_negative_net_returns_nothing(self):
        ledger = _ledger(_event("DEPOSIT", "10", 1), _event("WITHDRAWAL", "50", 2))
        assert fifo_resolve(ledger) == []

    def test_withdrawal_before_deposit_is_dropped(self):
        # Withdrawal of history predating the window: nothing to consume yet
        ledger = _ledger(_event("WITHDRAWAL", "5", 0), _event("DEPOSIT", "100", 1))
        active = fifo_resolve(ledger)

        assert len(active) == 1
        assert active[0].amount == Decimal("100")

    def test_same_timestamp_deposit_applies_first(self):
        ledger = _ledger(_event("WITHDRAWAL", "30", 1), _event("DEPOSIT", "100", 1))
        active = fifo_resolve(ledger)

        assert active[0].amount == Decimal("70")

    def test_does_not_mutate_ledger(self):
        ledger = _ledger(_event("DEPOSIT", "100", 0), _event("WITHDRAWAL", "40", 3))
        fifo_resolve(ledger)

        assert ledger.deposits[0].amount == Decimal("100")

    def test_conservation(self):
        ledger = _ledger(
            _event("DEPOSIT", "100", 0),
            _event("DEPOSIT", "250.5", 2),
            _event("WITHDRAWAL", "80", 3),
            _event("DEPOSIT", "10", 4),
            _event("WITHDRAWAL", "200", 5),
        )
        active = fifo_resolve(ledger)
        remaining = sum((d.amount for d in active), Decimal(0))

        assert remaining == ledger.total_deposits - ledger.total_withdrawals
        assert remaining <= ledger.total_deposits
        assert all(d.amount > 0 for d in active)


class TestResolveStakes:
    def test_end_to_end_scenario(self):
        ledger = _ledger(
            _event("DEPOSIT", "1000", 0),
            _event("DEPOSIT", "500", 10),
            _event("WITHDRAWAL", "1200", 20),
        )
        stakes = resolve_stakes(ledger, NOW, 90, MINT)

        assert len(stakes) == 1
        assert stakes[0].amount == Decimal("300")
        assert stakes[0].stake_date == T0 + timedelta(days=10)
        assert stakes[0].unlock_date == T0 + timedelta(days=100)
        assert stakes[0].is_locked is True
        assert stakes[0].mint_address == MINT


class TestResolveWallets:
    def test_drops_empty_wallets_and_sorts(self):
        ledgers = {
            "WalletA": _ledger(_event("DEPOSIT", "100", 0, "WalletA"), _event("WITHDRAWAL", "100", 1, "WalletA"), wallet="WalletA"),
            "WalletB": _ledger(_event("DEPOSIT", "50", 0, "WalletB"), wallet="WalletB"),
            "WalletC": _ledger(_event("DEPOSIT", "75", 0, "WalletC"), wallet="WalletC"),
            "WalletD": _ledger(_event("DEPOSIT", "50", 0, "WalletD"), wallet="WalletD"),
        }
        summaries = resolve_wallets(ledgers, NOW, 90, MINT)

        assert [s.wallet_address for s in summaries] == ["WalletC", "WalletB", "WalletD"]
        assert summaries[0].total_staked == Decimal("75")

    def test_locked_and_unlocked_split(self):
        ledger = _ledger(_event("DEPOSIT", "10", 0), _event("DEPOSIT", "20", 25))
        now = T0 + timedelta(days=100)
        [summary] = resolve_wallets({"WalletA": ledger}, now, 90, MINT)

        assert summary.total_unlocked == Decimal("10")
        assert summary.total_locked == Decimal("20")
        assert summary.total_staked == Decimal("30")
