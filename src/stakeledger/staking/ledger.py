"""Wallet ledger aggregation — fold classified events into per-wallet deposit/withdrawal lists.

Ledgers are passed in and returned; nothing here keeps module-level state.
"""

from decimal import Decimal

from stakeledger.domain.enums.staking import TransferDirection
from stakeledger.domain.models.staking import RawTransferEvent, StakingSnapshotResult, WalletLedger
from stakeledger.staking.lock_status import to_ms


def seed_ledgers(previous: StakingSnapshotResult | None) -> dict[str, WalletLedger]:
    """Starting ledgers for an incremental run.

    Each surviving stake of the previous snapshot becomes one synthetic
    deposit at its original date. Withdrawals start empty: consumed deposits
    were never persisted, only their open remainder.
    """
    ledgers: dict[str, WalletLedger] = {}
    if previous is None:
        return ledgers

    for wallet in previous.staking_data:
        if wallet.total_staked <= 0:
            continue
        ledger = WalletLedger(wallet_address=wallet.wallet_address)
        for stake in wallet.stakes:
            ledger.record(RawTransferEvent(
                direction=TransferDirection.DEPOSIT,
                counterparty_wallet=wallet.wallet_address,
                amount=stake.amount,
                timestamp_ms=to_ms(stake.stake_date),
                transaction_id="",
            ))
        ledgers[wallet.wallet_address] = ledger
    return ledgers


def fold_events(
    ledgers: dict[str, WalletLedger],
    events: list[RawTransferEvent],
) -> dict[str, WalletLedger]:
    """Return new ledgers with `events` appended in timestamp order. Input ledgers are not mutated."""
    folded = {address: ledger.model_copy(deep=True) for address, ledger in ledgers.items()}
    for event in sorted(events, key=lambda e: e.timestamp_ms):
        ledger = folded.get(event.counterparty_wallet)
        if ledger is None:
            ledger = WalletLedger(wallet_address=event.counterparty_wallet)
            folded[event.counterparty_wallet] = ledger
        ledger.record(event)
    return folded


def build_ledgers(
    events: list[RawTransferEvent],
    previous: StakingSnapshotResult | None = None,
) -> dict[str, WalletLedger]:
    """Full run when previous is None, otherwise seed from previous and fold only the new events."""
    return fold_events(seed_ledgers(previous), events)


def total_net(ledgers: dict[str, WalletLedger]) -> Decimal:
    return sum((ledger.net_amount for ledger in ledgers.values()), Decimal(0))
