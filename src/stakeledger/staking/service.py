"""StakingService — orchestrates fetch → classify → aggregate → FIFO → lock status → reconcile → persist."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

from stakeledger.config import Settings
from stakeledger.domain.models.staking import StakingSnapshotResult
from stakeledger.exceptions import ExternalServiceError, FatalFetchError
from stakeledger.infra.blockchain.solana.rpc_client import SolanaRPCClient
from stakeledger.infra.blockchain.solana.tx_fetcher import CustodyTxFetcher
from stakeledger.infra.http.retry import retry_with_backoff
from stakeledger.staking.classifier import TransferClassifier, classify_transactions
from stakeledger.staking.fifo import resolve_wallets
from stakeledger.staking.ledger import build_ledgers, total_net
from stakeledger.staking.lock_status import aggregate_totals
from stakeledger.staking.reconciliation import mismatch_warning, reconcile

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnapshotStore(Protocol):
    async def load_latest_snapshot(self) -> Optional[StakingSnapshotResult]: ...

    async def save_snapshot(self, result: StakingSnapshotResult) -> int: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StakingService:
    """Reconstructs every wallet's open stakes from the custody account's transfer history."""

    def __init__(
        self,
        rpc: SolanaRPCClient,
        store: SnapshotStore,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._rpc = rpc
        self._store = store
        self._settings = settings
        self._clock = clock
        self._fetcher = CustodyTxFetcher(
            rpc,
            mint=settings.token_mint_address,
            page_size=settings.signature_page_size,
            page_delay=settings.signature_page_delay_seconds,
            batch_size=settings.tx_batch_size,
            batch_delay=settings.tx_batch_delay_seconds,
            max_retries=settings.rpc_max_retries,
            retry_base_delay=settings.rpc_retry_base_delay_seconds,
            retry_max_delay=settings.rpc_retry_max_delay_seconds,
        )
        self._classifier = TransferClassifier(
            custody_owner=settings.staking_contract_address,
            deposit_tolerance=settings.deposit_match_tolerance,
            withdrawal_tolerance_min=settings.withdrawal_match_tolerance_min,
            withdrawal_tolerance_ratio=settings.withdrawal_match_tolerance_ratio,
        )

    async def compute_staking_snapshot(
        self,
        use_incremental: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> StakingSnapshotResult:
        """Run the pipeline and persist the result. Fatal errors leave the previous snapshot untouched."""
        s = self._settings
        if not s.solana_rpc_url:
            raise FatalFetchError("Solana RPC URL is not configured")

        await self._fatal_call("connectivity check", self._rpc.get_version)
        token_account = await self._resolve_custody_account()
        on_chain_balance = await self._fatal_call(
            "custody balance", lambda: self._rpc.get_token_account_balance(token_account),
        )
        logger.info("Custody token account %s holds %s", token_account, on_chain_balance)

        previous = await self._store.load_latest_snapshot() if use_incremental else None
        checkpoint = previous.last_signature if previous is not None else None
        if checkpoint:
            logger.info("Incremental run from checkpoint %s (snapshot %s)", checkpoint, previous.id)
        else:
            logger.info("Full run over entire custody history")
            previous = None

        fetched = await self._fetcher.fetch(token_account, until=checkpoint, cancel_event=cancel_event)
        warnings = list(fetched.warnings)

        classified = classify_transactions(fetched.transactions, self._classifier)
        for unresolved in classified.unresolved:
            warnings.append(
                f"Unresolved {unresolved.direction.value.lower()} of {unresolved.amount} "
                f"in {unresolved.signature}: no matching counterparty"
            )

        now = self._clock()
        ledgers = build_ledgers(classified.events, previous)
        logger.info(
            "%d events across %d wallets, raw net %s",
            len(classified.events), len(ledgers), total_net(ledgers),
        )

        staking_data = resolve_wallets(ledgers, now, s.lock_period_days, s.token_mint_address)
        total_staked, total_locked, total_unlocked = aggregate_totals(staking_data)

        report = reconcile(staking_data, on_chain_balance, s.reconciliation_threshold_pct)
        if not report.within_threshold:
            warnings.append(mismatch_warning(report))

        result = StakingSnapshotResult(
            contract_address=s.staking_contract_address,
            timestamp=now,
            total_staked=total_staked,
            total_locked=total_locked,
            total_unlocked=total_unlocked,
            last_signature=fetched.newest_signature or checkpoint,
            is_incremental=checkpoint is not None,
            on_chain_balance=on_chain_balance,
            warnings=warnings,
            staking_data=staking_data,
        )

        snapshot_id = await self._store.save_snapshot(result)
        logger.info(
            "Staking snapshot %d saved: %d wallets, %s staked (%s locked, %s unlocked)",
            snapshot_id, len(staking_data), total_staked, total_locked, total_unlocked,
        )
        return result.model_copy(update={"id": snapshot_id})

    async def _resolve_custody_account(self) -> str:
        s = self._settings
        accounts = await self._fatal_call(
            "custody token account lookup",
            lambda: self._rpc.get_token_accounts_by_owner(s.staking_contract_address, s.token_mint_address),
        )
        if not accounts:
            raise FatalFetchError(
                f"No token account for mint {s.token_mint_address} owned by {s.staking_contract_address}"
            )
        return accounts[0]

    async def _fatal_call(self, what: str, operation: Callable[[], Awaitable[T]]) -> T:
        s = self._settings
        try:
            return await retry_with_backoff(
                operation,
                max_retries=s.rpc_max_retries,
                base_delay=s.rpc_retry_base_delay_seconds,
                max_delay=s.rpc_retry_max_delay_seconds,
            )
        except ExternalServiceError as e:
            logger.exception("Fatal: %s failed", what)
            raise FatalFetchError(f"{what} failed: {e}") from e
