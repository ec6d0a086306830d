"""Lock status and totals — pure functions of stake dates and the current time."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from stakeledger.domain.models.staking import Stake, WalletStakeSummary

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_ms(value: datetime) -> int:
    """Epoch milliseconds. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_ms(timestamp_ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=timestamp_ms)


def unlock_date_for(stake_date: datetime, lock_period_days: int) -> datetime:
    return stake_date + timedelta(days=lock_period_days)


def is_locked_at(unlock_date: datetime, now: datetime) -> bool:
    """Strict: a stake unlocking exactly at `now` is unlocked."""
    return unlock_date > now


def build_stake(
    amount: Decimal,
    timestamp_ms: int,
    now: datetime,
    lock_period_days: int,
    mint_address: str,
) -> Stake:
    stake_date = from_ms(timestamp_ms)
    unlock_date = unlock_date_for(stake_date, lock_period_days)
    return Stake(
        amount=amount,
        stake_date=stake_date,
        unlock_date=unlock_date,
        is_locked=is_locked_at(unlock_date, now),
        mint_address=mint_address,
    )


def summarize_wallet(wallet_address: str, stakes: list[Stake]) -> WalletStakeSummary | None:
    """Per-wallet totals. Returns None for a wallet with nothing staked."""
    total_locked = sum((s.amount for s in stakes if s.is_locked), Decimal(0))
    total_unlocked = sum((s.amount for s in stakes if not s.is_locked), Decimal(0))
    total_staked = total_locked + total_unlocked
    if total_staked <= 0:
        return None
    return WalletStakeSummary(
        wallet_address=wallet_address,
        total_staked=total_staked,
        total_locked=total_locked,
        total_unlocked=total_unlocked,
        stakes=stakes,
    )


def sort_summaries(summaries: list[WalletStakeSummary]) -> list[WalletStakeSummary]:
    """Largest stakers first; address breaks ties so output is deterministic."""
    return sorted(summaries, key=lambda s: (-s.total_staked, s.wallet_address))


def aggregate_totals(summaries: list[WalletStakeSummary]) -> tuple[Decimal, Decimal, Decimal]:
    """(total_staked, total_locked, total_unlocked) across all wallets."""
    total_staked = sum((s.total_staked for s in summaries), Decimal(0))
    total_locked = sum((s.total_locked for s in summaries), Decimal(0))
    total_unlocked = sum((s.total_unlocked for s in summaries), Decimal(0))
    return total_staked, total_locked, total_unlocked
