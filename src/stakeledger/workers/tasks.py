"""Celery tasks for background processing."""

import asyncio
import logging

from stakeledger.exceptions import FatalFetchError
from stakeledger.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="take_staking_snapshot", max_retries=2, default_retry_delay=60)
def take_staking_snapshot_task(self, use_incremental: bool = True) -> dict:
    """Compute and persist a staking snapshot.

    Bridges to async code via asyncio.run() — each task invocation
    creates its own engine + HTTP client (no shared state between runs).
    A fatal fetch error leaves the previous snapshot in place and is retried.
    """
    try:
        return asyncio.run(_take_staking_snapshot_async(use_incremental))
    except FatalFetchError as e:
        logger.warning("Staking snapshot aborted (attempt %d): %s", self.request.retries + 1, e)
        raise self.retry(exc=e)


async def _take_staking_snapshot_async(use_incremental: bool) -> dict:
    from stakeledger.config import settings
    from stakeledger.db.repos.snapshot_repo import SqlSnapshotStore
    from stakeledger.db.session import build_engine, build_session_factory
    from stakeledger.infra.blockchain.solana.rpc_client import SolanaRPCClient
    from stakeledger.infra.http.rate_limited_client import RateLimitedClient
    from stakeledger.staking.service import StakingService

    engine = build_engine(settings.database_url, echo=False)
    session_factory = build_session_factory(engine)

    try:
        async with RateLimitedClient(
            rate_per_second=settings.rpc_rate_per_second,
            timeout=settings.rpc_timeout_seconds,
        ) as http_client:
            rpc = SolanaRPCClient(rpc_url=settings.full_rpc_url, http_client=http_client)
            service = StakingService(rpc=rpc, store=SqlSnapshotStore(session_factory), settings=settings)
            result = await service.compute_staking_snapshot(use_incremental=use_incremental)

        logger.info("Staking snapshot %s: %d wallets", result.id, len(result.staking_data))
        return {
            "status": "ok",
            "snapshot_id": result.id,
            "wallet_count": len(result.staking_data),
            "total_staked": str(result.total_staked),
            "is_incremental": result.is_incremental,
            "warnings": len(result.warnings),
        }
    except FatalFetchError:
        raise
    except Exception as e:
        logger.exception("Staking snapshot failed")
        return {"status": "error", "message": str(e)}
    finally:
        await engine.dispose()
