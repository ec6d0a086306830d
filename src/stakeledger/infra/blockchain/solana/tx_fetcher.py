"""Custody transaction fetcher — signature pagination plus throttled, batched detail fetch."""

import asyncio
import logging

from stakeledger.domain.models.staking import FetchResult, ParsedTokenTransaction
from stakeledger.exceptions import ExternalServiceError, FetchCancelledError
from stakeledger.infra.blockchain.solana.rpc_client import SolanaRPCClient
from stakeledger.infra.blockchain.solana.token_balances import parse_token_transaction
from stakeledger.infra.http.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class CustodyTxFetcher:
    """Fetches every transaction touching the custody token account, newest checkpoint first.

    Full mode walks the whole history; incremental mode passes the previous
    checkpoint as `until` so only strictly newer signatures come back.
    """

    def __init__(
        self,
        rpc: SolanaRPCClient,
        mint: str,
        page_size: int = 100,
        page_delay: float = 1.0,
        batch_size: int = 5,
        batch_delay: float = 1.0,
        max_retries: int = 5,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 30.0,
    ) -> None:
        self._rpc = rpc
        self._mint = mint
        self._page_size = page_size
        self._page_delay = page_delay
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay

    async def fetch(
        self,
        token_account: str,
        until: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> FetchResult:
        warnings: list[str] = []

        sig_infos, newest = await self._fetch_signatures(token_account, until, cancel_event, warnings)
        live_sigs = [s for s in sig_infos if s.get("err") is None]
        logger.info(
            "Found %d signatures (%d failed on-chain) for %s",
            len(sig_infos), len(sig_infos) - len(live_sigs), token_account,
        )

        # Listing is newest-first; reverse so same-second TXs keep chain order after the stable sort
        live_sigs.reverse()
        transactions = await self._fetch_transactions(live_sigs, cancel_event, warnings)
        transactions.sort(key=lambda tx: tx.block_time or 0)

        return FetchResult(
            transactions=transactions,
            newest_signature=newest,
            signature_count=len(sig_infos),
            warnings=warnings,
        )

    async def _fetch_signatures(
        self,
        address: str,
        until: str | None,
        cancel_event: asyncio.Event | None,
        warnings: list[str],
    ) -> tuple[list[dict], str | None]:
        """Page backward through history. Returns (signatures newest-first, newest signature)."""
        all_sigs: list[dict] = []
        newest: str | None = None
        before: str | None = None
        page = 1

        while True:
            _check_cancelled(cancel_event)
            try:
                batch = await retry_with_backoff(
                    lambda: self._rpc.get_signatures(address, before=before, until=until, limit=self._page_size),
                    max_retries=self._max_retries,
                    base_delay=self._retry_base_delay,
                    max_delay=self._retry_max_delay,
                )
            except ExternalServiceError as e:
                msg = f"Signature page {page} failed after {self._max_retries} attempts, history truncated: {e}"
                logger.warning(msg)
                warnings.append(msg)
                break

            logger.info("Signature page %d: %d signatures", page, len(batch))

            # Captured before further paging so writes landing mid-run don't shift the checkpoint
            if page == 1 and batch:
                newest = batch[0]["signature"]

            all_sigs.extend(batch)

            if len(batch) < self._page_size:
                break

            before = batch[-1]["signature"]
            page += 1
            await asyncio.sleep(self._page_delay)

        return all_sigs, newest

    async def _fetch_transactions(
        self,
        sig_infos: list[dict],
        cancel_event: asyncio.Event | None,
        warnings: list[str],
    ) -> list[ParsedTokenTransaction]:
        transactions: list[ParsedTokenTransaction] = []
        total_batches = (len(sig_infos) + self._batch_size - 1) // self._batch_size

        for batch_no, start in enumerate(range(0, len(sig_infos), self._batch_size), start=1):
            _check_cancelled(cancel_event)
            batch = sig_infos[start:start + self._batch_size]
            logger.debug("Fetching transaction batch %d/%d", batch_no, total_batches)

            try:
                results = await retry_with_backoff(
                    lambda: self._fetch_batch(batch),
                    max_retries=self._max_retries,
                    base_delay=self._retry_base_delay,
                    max_delay=self._retry_max_delay,
                )
            except ExternalServiceError as e:
                skipped = ", ".join(s["signature"] for s in batch)
                msg = f"Transaction batch {batch_no}/{total_batches} skipped after {self._max_retries} attempts ({skipped}): {e}"
                logger.warning(msg)
                warnings.append(msg)
                results = []

            for sig_info, tx_data in zip(batch, results):
                parsed = self._parse(sig_info, tx_data, warnings)
                if parsed is not None:
                    transactions.append(parsed)

            if start + self._batch_size < len(sig_infos):
                await asyncio.sleep(self._batch_delay)

        logger.info("Fetched %d of %d transactions", len(transactions), len(sig_infos))
        return transactions

    async def _fetch_batch(self, batch: list[dict]) -> list[dict | None]:
        """Fetch one batch concurrently. Every request settles before the first error is re-raised."""
        results = await asyncio.gather(
            *(self._rpc.get_transaction(s["signature"]) for s in batch),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise next((e for e in errors if isinstance(e, ExternalServiceError)), errors[0])
        return results  # type: ignore[return-value]

    def _parse(self, sig_info: dict, tx_data: dict | None, warnings: list[str]) -> ParsedTokenTransaction | None:
        signature = sig_info["signature"]
        if tx_data is None:
            msg = f"Transaction {signature} returned no data"
            logger.warning(msg)
            warnings.append(msg)
            return None

        parsed = parse_token_transaction(
            tx_data, self._mint, signature=signature, block_time=sig_info.get("blockTime"),
        )
        if parsed.block_time is None:
            msg = f"Transaction {signature} has no block time, skipped"
            logger.warning(msg)
            warnings.append(msg)
            return None
        return parsed


def _check_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise FetchCancelledError("Snapshot fetch cancelled")
