"""Staking snapshot persistence — one snapshot row, its wallet rows and its stake rows."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stakeledger.db.session import Base, BigIntPK, TimestampMixin


class StakingSnapshotRecord(TimestampMixin, Base):
    """Snapshot header. last_signature is the checkpoint the next incremental run resumes from."""

    __tablename__ = "staking_snapshots"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    contract_address: Mapped[str] = mapped_column(String(64))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    total_staked: Mapped[Decimal] = mapped_column(Numeric(38, 18), default=Decimal(0))
    total_locked: Mapped[Decimal] = mapped_column(Numeric(38, 18), default=Decimal(0))
    total_unlocked: Mapped[Decimal] = mapped_column(Numeric(38, 18), default=Decimal(0))
    last_signature: Mapped[Optional[str]] = mapped_column(String(100), default=None, index=True)
    is_incremental: Mapped[bool] = mapped_column(Boolean, default=False)
    on_chain_balance: Mapped[Optional[Decimal]] = mapped_column(Numeric(38, 18), default=None)
    warnings: Mapped[Optional[str]] = mapped_column(Text, default=None)  # JSON list

    wallets: Mapped[list["StakingWalletRecord"]] = relationship(
        back_populates="snapshot", cascade="all, delete-orphan", passive_deletes=True,
    )
    stakes: Mapped[list["StakeRecord"]] = relationship(
        back_populates="snapshot", cascade="all, delete-orphan", passive_deletes=True,
    )


class StakingWalletRecord(Base):
    __tablename__ = "staking_wallet_data"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[int] = mapped_column(ForeignKey("staking_snapshots.id", ondelete="CASCADE"), index=True)
    wallet_address: Mapped[str] = mapped_column(String(64), index=True)
    total_staked: Mapped[Decimal] = mapped_column(Numeric(38, 18), default=Decimal(0))
    total_locked: Mapped[Decimal] = mapped_column(Numeric(38, 18), default=Decimal(0))
    total_unlocked: Mapped[Decimal] = mapped_column(Numeric(38, 18), default=Decimal(0))

    snapshot: Mapped[StakingSnapshotRecord] = relationship(back_populates="wallets")


class StakeRecord(Base):
    """One open stake. unlock_date/is_locked are as of the snapshot timestamp."""

    __tablename__ = "staking_stakes"
    __table_args__ = (
        Index("ix_staking_stakes_snapshot_wallet", "snapshot_id", "wallet_address"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[int] = mapped_column(ForeignKey("staking_snapshots.id", ondelete="CASCADE"))
    wallet_address: Mapped[str] = mapped_column(String(64), index=True)
    mint_address: Mapped[str] = mapped_column(String(64))
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 18))
    stake_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    unlock_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=True)

    snapshot: Mapped[StakingSnapshotRecord] = relationship(back_populates="stakes")
