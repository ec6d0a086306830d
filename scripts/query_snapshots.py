"""Inspect persisted staking snapshots.

Usage:
    PYTHONPATH=src python scripts/query_snapshots.py                  # list snapshots
    PYTHONPATH=src python scripts/query_snapshots.py --id 12 --search Abc --limit 20
    PYTHONPATH=src python scripts/query_snapshots.py --unlocks [--wallet ADDR]
"""

import argparse
import asyncio
import logging

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def main(args: argparse.Namespace) -> None:
    from stakeledger.config import settings
    from stakeledger.db.repos.snapshot_repo import SnapshotRepo
    from stakeledger.db.session import build_engine, build_session_factory

    engine = build_engine(settings.database_url, echo=False)
    sf = build_session_factory(engine)

    async with sf() as session:
        repo = SnapshotRepo(session)

        if args.unlocks:
            buckets = await repo.get_unlock_summary(snapshot_id=args.id, wallet_address=args.wallet)
            print(f"Upcoming unlocks: {len(buckets)} dates")
            for b in buckets:
                print(f"  {b.date.isoformat()}  {b.amount}")
        elif args.id is not None or args.search:
            wallets = await repo.get_filtered_staking_data(search=args.search, limit=args.limit, snapshot_id=args.id)
            print(f"Wallets: {len(wallets)}")
            for w in wallets:
                print(f"  {w.wallet_address}  staked={w.total_staked}  locked={w.total_locked}  unlocked={w.total_unlocked}")
                for s in w.stakes:
                    state = "locked" if s.is_locked else "unlocked"
                    print(f"      {s.amount}  staked {s.stake_date:%Y-%m-%d}  unlocks {s.unlock_date:%Y-%m-%d}  ({state})")
        else:
            snapshots = await repo.list_snapshots(limit=args.limit or 50)
            print(f"Snapshots: {len(snapshots)}")
            for s in snapshots:
                kind = "incr" if s.is_incremental else "full"
                print(f"  #{s.id}  {s.timestamp:%Y-%m-%d %H:%M}  {kind}  staked={s.total_staked}  checkpoint={s.last_signature}")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Inspect persisted staking snapshots.")
    parser.add_argument("--id", type=int, default=None, help="Snapshot id (defaults to latest).")
    parser.add_argument("--search", default=None, help="Wallet address substring.")
    parser.add_argument("--limit", type=int, default=None, help="Maximum rows to print.")
    parser.add_argument("--unlocks", action="store_true", help="Show upcoming unlock amounts by date.")
    parser.add_argument("--wallet", default=None, help="Restrict --unlocks to one wallet.")
    asyncio.run(main(parser.parse_args()))
