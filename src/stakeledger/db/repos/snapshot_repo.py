import json
from collections import defaultdict
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from stakeledger.db.models.staking import StakeRecord, StakingSnapshotRecord, StakingWalletRecord
from stakeledger.domain.models.staking import (
    SnapshotInfo,
    Stake,
    StakingSnapshotResult,
    UnlockBucket,
    WalletStakeSummary,
)


class SnapshotRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_snapshot(self, result: StakingSnapshotResult) -> int:
        """Add snapshot, wallet and stake rows and flush. The caller owns the transaction."""
        record = StakingSnapshotRecord(
            contract_address=result.contract_address,
            timestamp=result.timestamp,
            total_staked=result.total_staked,
            total_locked=result.total_locked,
            total_unlocked=result.total_unlocked,
            last_signature=result.last_signature,
            is_incremental=result.is_incremental,
            on_chain_balance=result.on_chain_balance,
            warnings=json.dumps(result.warnings) if result.warnings else None,
        )
        for wallet in result.staking_data:
            record.wallets.append(StakingWalletRecord(
                wallet_address=wallet.wallet_address,
                total_staked=wallet.total_staked,
                total_locked=wallet.total_locked,
                total_unlocked=wallet.total_unlocked,
            ))
            for stake in wallet.stakes:
                record.stakes.append(StakeRecord(
                    wallet_address=wallet.wallet_address,
                    mint_address=stake.mint_address,
                    amount=stake.amount,
                    stake_date=stake.stake_date,
                    unlock_date=stake.unlock_date,
                    is_locked=stake.is_locked,
                ))

        self._session.add(record)
        await self._session.flush()
        return record.id

    async def load_latest_snapshot(self) -> Optional[StakingSnapshotResult]:
        snapshot_id = await self.latest_snapshot_id()
        if snapshot_id is None:
            return None
        return await self.get_snapshot(snapshot_id)

    async def get_snapshot(self, snapshot_id: int) -> Optional[StakingSnapshotResult]:
        result = await self._session.execute(
            select(StakingSnapshotRecord)
            .where(StakingSnapshotRecord.id == snapshot_id)
            .options(selectinload(StakingSnapshotRecord.wallets), selectinload(StakingSnapshotRecord.stakes))
        )
        record = result.scalar_one_or_none()
        if record is None:
            return None

        return StakingSnapshotResult(
            id=record.id,
            contract_address=record.contract_address,
            timestamp=_utc(record.timestamp),
            total_staked=record.total_staked,
            total_locked=record.total_locked,
            total_unlocked=record.total_unlocked,
            last_signature=record.last_signature,
            is_incremental=record.is_incremental,
            on_chain_balance=record.on_chain_balance,
            warnings=json.loads(record.warnings) if record.warnings else [],
            staking_data=_build_wallets(record.wallets, record.stakes),
        )

    async def latest_snapshot_id(self) -> Optional[int]:
        result = await self._session.execute(
            select(StakingSnapshotRecord.id)
            .order_by(StakingSnapshotRecord.timestamp.desc(), StakingSnapshotRecord.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_snapshots(self, limit: int = 50, offset: int = 0) -> list[SnapshotInfo]:
        result = await self._session.execute(
            select(StakingSnapshotRecord)
            .order_by(StakingSnapshotRecord.timestamp.desc(), StakingSnapshotRecord.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [
            SnapshotInfo(
                id=r.id,
                contract_address=r.contract_address,
                timestamp=_utc(r.timestamp),
                total_staked=r.total_staked,
                total_locked=r.total_locked,
                total_unlocked=r.total_unlocked,
                last_signature=r.last_signature,
                is_incremental=r.is_incremental,
            )
            for r in result.scalars().all()
        ]

    async def get_filtered_staking_data(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        snapshot_id: Optional[int] = None,
    ) -> list[WalletStakeSummary]:
        """Wallets of a snapshot (latest by default), optionally filtered by address substring."""
        if snapshot_id is None:
            snapshot_id = await self.latest_snapshot_id()
            if snapshot_id is None:
                return []

        stmt = (
            select(StakingWalletRecord)
            .where(StakingWalletRecord.snapshot_id == snapshot_id)
            .order_by(StakingWalletRecord.total_staked.desc(), StakingWalletRecord.wallet_address.asc())
        )
        if search and search.strip():
            stmt = stmt.where(StakingWalletRecord.wallet_address.ilike(f"%{search.strip()}%"))
        if limit is not None and limit > 0:
            stmt = stmt.limit(limit)

        wallets = list((await self._session.execute(stmt)).scalars().all())
        if not wallets:
            return []

        stakes_result = await self._session.execute(
            select(StakeRecord).where(
                StakeRecord.snapshot_id == snapshot_id,
                StakeRecord.wallet_address.in_([w.wallet_address for w in wallets]),
            )
        )
        return _build_wallets(wallets, list(stakes_result.scalars().all()))

    async def get_unlock_summary(
        self,
        snapshot_id: Optional[int] = None,
        wallet_address: Optional[str] = None,
        today: Optional[date] = None,
    ) -> list[UnlockBucket]:
        """Stake amounts grouped by UTC unlock date, from `today` onwards, ascending."""
        if snapshot_id is None:
            snapshot_id = await self.latest_snapshot_id()
            if snapshot_id is None:
                return []

        today = today or datetime.now(timezone.utc).date()
        start = datetime.combine(today, time.min, tzinfo=timezone.utc)

        stmt = select(StakeRecord.unlock_date, StakeRecord.amount).where(
            StakeRecord.snapshot_id == snapshot_id,
            StakeRecord.unlock_date >= start,
        )
        if wallet_address:
            stmt = stmt.where(StakeRecord.wallet_address == wallet_address)

        buckets: dict[date, Decimal] = defaultdict(Decimal)
        for unlock_date, amount in (await self._session.execute(stmt)).all():
            buckets[_utc(unlock_date).date()] += amount

        return [UnlockBucket(date=d, amount=buckets[d]) for d in sorted(buckets)]


class SqlSnapshotStore:
    """Snapshot store backed by SnapshotRepo. Each save commits in a single transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load_latest_snapshot(self) -> Optional[StakingSnapshotResult]:
        async with self._session_factory() as session:
            return await SnapshotRepo(session).load_latest_snapshot()

    async def save_snapshot(self, result: StakingSnapshotResult) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                return await SnapshotRepo(session).save_snapshot(result)


def _build_wallets(wallets: list[StakingWalletRecord], stakes: list[StakeRecord]) -> list[WalletStakeSummary]:
    stakes_by_wallet: dict[str, list[StakeRecord]] = defaultdict(list)
    for s in stakes:
        stakes_by_wallet[s.wallet_address].append(s)

    summaries = []
    for w in sorted(wallets, key=lambda w: (-w.total_staked, w.wallet_address)):
        wallet_stakes = sorted(stakes_by_wallet.get(w.wallet_address, []), key=lambda s: (_utc(s.stake_date), s.id))
        summaries.append(WalletStakeSummary(
            wallet_address=w.wallet_address,
            total_staked=w.total_staked,
            total_locked=w.total_locked,
            total_unlocked=w.total_unlocked,
            stakes=[
                Stake(
                    amount=s.amount,
                    stake_date=_utc(s.stake_date),
                    unlock_date=_utc(s.unlock_date),
                    is_locked=s.is_locked,
                    mint_address=s.mint_address,
                )
                for s in wallet_stakes
            ],
        ))
    return summaries


def _utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way back; timestamps are always stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
