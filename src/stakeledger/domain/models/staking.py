"""Domain types for stake reconstruction — pure data, no DB or RPC dependency."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from stakeledger.domain.enums.staking import TransferDirection


def canonical_amount(value: Decimal) -> Decimal:
    """Strip trailing zeros: RPC amounts carry the mint's scale, Numeric(38, 18) rows carry 18 places."""
    if value == value.to_integral_value():
        return value.quantize(Decimal(1))
    return value.normalize()


class TokenBalanceChange(BaseModel):
    """Pre/post balance of one token account inside a transaction, in UI units."""

    account: str
    owner: str | None = None
    mint: str
    pre_amount: Decimal = Decimal(0)
    post_amount: Decimal = Decimal(0)

    @property
    def delta(self) -> Decimal:
        return self.post_amount - self.pre_amount


class ParsedTokenTransaction(BaseModel):
    """Chain-agnostic view of a fetched transaction: only what the classifier needs."""

    signature: str
    block_time: int | None = None  # seconds since epoch
    failed: bool = False
    balance_changes: list[TokenBalanceChange] = []

    @property
    def timestamp_ms(self) -> int | None:
        if self.block_time is None:
            return None
        return self.block_time * 1000


class RawTransferEvent(BaseModel):
    """A counterpart-matched transfer into (deposit) or out of (withdrawal) the custody account."""

    model_config = ConfigDict(frozen=True)

    direction: TransferDirection
    counterparty_wallet: str
    amount: Decimal  # Always positive
    timestamp_ms: int
    transaction_id: str = ""


class UnresolvedTransfer(BaseModel):
    """Custody balance change with no counterparty inside tolerance. Dropped from the ledger."""

    signature: str
    direction: TransferDirection
    amount: Decimal


class ClassificationResult(BaseModel):
    events: list[RawTransferEvent] = []
    unresolved: list[UnresolvedTransfer] = []


class WalletLedger(BaseModel):
    """Raw deposit/withdrawal history of one wallet, before FIFO resolution.

    net_amount is diagnostic only and may go negative when a withdrawal
    predates the fetched history window.
    """

    wallet_address: str
    deposits: list[RawTransferEvent] = []
    withdrawals: list[RawTransferEvent] = []
    net_amount: Decimal = Decimal(0)

    def record(self, event: RawTransferEvent) -> None:
        if event.direction == TransferDirection.DEPOSIT:
            self.deposits.append(event)
            self.net_amount += event.amount
        else:
            self.withdrawals.append(event)
            self.net_amount -= event.amount

    @property
    def total_deposits(self) -> Decimal:
        return sum((d.amount for d in self.deposits), Decimal(0))

    @property
    def total_withdrawals(self) -> Decimal:
        return sum((w.amount for w in self.withdrawals), Decimal(0))


class ActiveDeposit(BaseModel):
    """A deposit (or the unconsumed remainder of one) sitting in the FIFO queue."""

    amount: Decimal
    timestamp_ms: int
    signature: str = ""


class Stake(BaseModel):
    amount: Decimal  # Remaining, always > 0
    stake_date: datetime
    unlock_date: datetime  # stake_date + lock period
    is_locked: bool
    mint_address: str

    @field_validator("amount")
    @classmethod
    def normalize_amount(cls, v: Decimal) -> Decimal:
        return canonical_amount(v)


class WalletStakeSummary(BaseModel):
    wallet_address: str
    total_staked: Decimal  # = total_locked + total_unlocked
    total_locked: Decimal
    total_unlocked: Decimal
    stakes: list[Stake] = []

    @field_validator("total_staked", "total_locked", "total_unlocked")
    @classmethod
    def normalize_totals(cls, v: Decimal) -> Decimal:
        return canonical_amount(v)


class StakingSnapshotResult(BaseModel):
    """Output of one snapshot run. last_signature is the checkpoint for the next incremental run."""

    id: int | None = None
    contract_address: str
    timestamp: datetime
    total_staked: Decimal = Decimal(0)
    total_locked: Decimal = Decimal(0)
    total_unlocked: Decimal = Decimal(0)
    last_signature: str | None = None
    is_incremental: bool = False
    on_chain_balance: Decimal | None = None
    warnings: list[str] = []
    staking_data: list[WalletStakeSummary] = []

    @field_validator("total_staked", "total_locked", "total_unlocked", "on_chain_balance")
    @classmethod
    def normalize_totals(cls, v: Decimal | None) -> Decimal | None:
        return canonical_amount(v) if v is not None else None


class SnapshotInfo(BaseModel):
    """Snapshot metadata without wallet rows."""

    id: int
    contract_address: str
    timestamp: datetime
    total_staked: Decimal
    total_locked: Decimal
    total_unlocked: Decimal
    last_signature: str | None = None
    is_incremental: bool = False


class FetchResult(BaseModel):
    transactions: list[ParsedTokenTransaction] = []  # Ascending by block time
    newest_signature: str | None = None
    signature_count: int = 0
    warnings: list[str] = []


class ReconciliationReport(BaseModel):
    calculated_total: Decimal
    on_chain_total: Decimal
    difference: Decimal
    percent_difference: Decimal | None = None  # None when the on-chain balance is zero
    within_threshold: bool
    top_wallets: list[tuple[str, Decimal]] = []


class UnlockBucket(BaseModel):
    date: date
    amount: Decimal
