"""FIFO stake resolution — pure functions, no DB dependency.

Withdrawals consume the oldest open deposit first. On-chain data cannot
tell which deposit a withdrawal belongs to, so oldest-first is the one
deterministic convention.
"""

import logging
from collections import deque
from datetime import datetime
from decimal import Decimal

from stakeledger.domain.enums.staking import TransferDirection
from stakeledger.domain.models.staking import ActiveDeposit, Stake, WalletLedger, WalletStakeSummary
from stakeledger.staking.lock_status import build_stake, sort_summaries, summarize_wallet

logger = logging.getLogger(__name__)


def fifo_resolve(ledger: WalletLedger) -> list[ActiveDeposit]:
    """Apply a wallet's withdrawals to its deposits, oldest first.

    Returns the open deposits (amount > 0) in deposit order. A withdrawal
    larger than everything still open drains the queue and the excess is
    dropped; it happens when the wallet's first deposits predate the
    fetched history.
    """
    if ledger.total_deposits - ledger.total_withdrawals <= 0:
        return []

    # Stable sort: at equal timestamps deposits stay ahead of withdrawals
    timeline = sorted(
        [*ledger.deposits, *ledger.withdrawals],
        key=lambda e: (e.timestamp_ms, e.direction != TransferDirection.DEPOSIT),
    )

    queue: deque[ActiveDeposit] = deque()
    for event in timeline:
        if event.direction == TransferDirection.DEPOSIT:
            queue.append(ActiveDeposit(
                amount=event.amount,
                timestamp_ms=event.timestamp_ms,
                signature=event.transaction_id,
            ))
            continue

        remaining = event.amount
        while remaining > 0 and queue:
            front = queue[0]
            if front.amount > remaining:
                front.amount -= remaining
                remaining = Decimal(0)
            else:
                remaining -= front.amount
                queue.popleft()

        if remaining > 0:
            logger.debug(
                "Withdrawal %s by %s exceeds open deposits by %s",
                event.transaction_id, ledger.wallet_address, remaining,
            )

    return [deposit for deposit in queue if deposit.amount > 0]


def resolve_stakes(
    ledger: WalletLedger,
    now: datetime,
    lock_period_days: int,
    mint_address: str,
) -> list[Stake]:
    return [
        build_stake(d.amount, d.timestamp_ms, now, lock_period_days, mint_address)
        for d in fifo_resolve(ledger)
    ]


def resolve_wallets(
    ledgers: dict[str, WalletLedger],
    now: datetime,
    lock_period_days: int,
    mint_address: str,
) -> list[WalletStakeSummary]:
    """Per-wallet summaries for every wallet with a positive stake, largest first."""
    summaries: list[WalletStakeSummary] = []
    for address, ledger in ledgers.items():
        summary = summarize_wallet(address, resolve_stakes(ledger, now, lock_period_days, mint_address))
        if summary is not None:
            summaries.append(summary)
    return sort_summaries(summaries)
