"""Compute and persist one staking snapshot.

Usage:
    PYTHONPATH=src python scripts/take_staking_snapshot.py          # incremental from latest snapshot
    PYTHONPATH=src python scripts/take_staking_snapshot.py --full   # replay entire custody history

Ctrl-C aborts the fetch cleanly; the previous snapshot stays in place.
"""

import argparse
import asyncio
import logging
import signal
import sys

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")
logger = logging.getLogger("take_staking_snapshot")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def main(use_incremental: bool) -> int:
    from stakeledger.container import Container
    from stakeledger.exceptions import FatalFetchError, FetchCancelledError

    container = Container()
    cancel_event = asyncio.Event()
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel_event.set)

    try:
        service = container.staking_service()
        result = await service.compute_staking_snapshot(
            use_incremental=use_incremental,
            cancel_event=cancel_event,
        )
    except FetchCancelledError:
        logger.warning("Cancelled; no snapshot written")
        return 130
    except FatalFetchError as e:
        logger.error("Snapshot aborted: %s", e)
        return 1
    finally:
        await container.http_client().close()
        await container.engine().dispose()

    print(f"\nSnapshot #{result.id}  ({'incremental' if result.is_incremental else 'full'})")
    print(f"  Wallets:        {len(result.staking_data)}")
    print(f"  Total staked:   {result.total_staked}")
    print(f"  Locked:         {result.total_locked}")
    print(f"  Unlocked:       {result.total_unlocked}")
    print(f"  On-chain:       {result.on_chain_balance}")
    print(f"  Checkpoint:     {result.last_signature}")
    if result.warnings:
        print(f"  Warnings ({len(result.warnings)}):")
        for w in result.warnings:
            print(f"    - {w}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Compute and persist a staking snapshot.")
    parser.add_argument("--full", action="store_true", help="Ignore the previous checkpoint and replay all history.")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(use_incremental=not args.full)))
