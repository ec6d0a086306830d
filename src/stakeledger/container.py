from dependency_injector import containers, providers

from stakeledger.config import Settings
from stakeledger.db.repos.snapshot_repo import SqlSnapshotStore
from stakeledger.db.session import build_engine, build_session_factory
from stakeledger.infra.blockchain.solana.rpc_client import SolanaRPCClient
from stakeledger.infra.http.rate_limited_client import RateLimitedClient
from stakeledger.staking.service import StakingService


class Container(containers.DeclarativeContainer):
    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    http_client = providers.Singleton(
        RateLimitedClient,
        rate_per_second=settings.provided.rpc_rate_per_second,
        timeout=settings.provided.rpc_timeout_seconds,
    )

    rpc_client = providers.Factory(
        SolanaRPCClient,
        rpc_url=settings.provided.full_rpc_url,
        http_client=http_client,
    )

    snapshot_store = providers.Factory(
        SqlSnapshotStore,
        session_factory=session_factory,
    )

    staking_service = providers.Factory(
        StakingService,
        rpc=rpc_client,
        store=snapshot_store,
        settings=settings,
    )
