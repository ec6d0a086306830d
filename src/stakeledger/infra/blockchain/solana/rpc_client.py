"""Solana JSON-RPC client — custody balance, token accounts, signatures and parsed transactions."""

import logging
from decimal import Decimal

import httpx

from stakeledger.exceptions import ExternalServiceError
from stakeledger.infra.blockchain.solana.token_balances import ui_amount
from stakeledger.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)

COMMITMENT = "confirmed"


class SolanaRPCClient:
    """Minimal Solana JSON-RPC client.

    Every failure surfaces as ExternalServiceError; callers decide whether
    to retry (see infra.http.retry).
    """

    def __init__(self, rpc_url: str, http_client: RateLimitedClient) -> None:
        self._rpc_url = rpc_url
        self._http = http_client

    async def _call(self, method: str, params: list) -> dict | list | int | str | None:
        """Execute a JSON-RPC call and return the result field."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }
        try:
            resp = await self._http.post(self._rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Solana RPC transport error ({method}): {e}") from e

        if resp.status_code == 429 or resp.status_code >= 500:
            raise ExternalServiceError(f"Solana RPC returned HTTP {resp.status_code} ({method})")

        try:
            data = resp.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"Solana RPC returned non-JSON body (HTTP {resp.status_code}, {method}): {e}"
            ) from e

        if not isinstance(data, dict):
            raise ExternalServiceError(f"Solana RPC returned unexpected payload ({method}): {data!r:.200}")

        if "error" in data:
            error = data["error"]
            msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ExternalServiceError(f"Solana RPC error ({method}): {msg}")

        return data.get("result")

    async def get_version(self) -> dict:
        result = await self._call("getVersion", [])
        return result or {}  # type: ignore[return-value]

    async def get_token_account_balance(self, account: str) -> Decimal:
        """UI-unit balance of an SPL token account."""
        result = await self._call("getTokenAccountBalance", [account, {"commitment": COMMITMENT}])
        if not result:
            raise ExternalServiceError(f"No balance returned for token account {account}")
        return ui_amount(result.get("value"))  # type: ignore[union-attr]

    async def get_token_accounts_by_owner(self, owner: str, mint: str) -> list[str]:
        """Addresses of the token accounts `owner` holds for `mint`."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": COMMITMENT}],
        )
        if not result:
            return []
        return [entry["pubkey"] for entry in result.get("value", [])]  # type: ignore[union-attr]

    async def get_signatures(
        self,
        address: str,
        before: str | None = None,
        until: str | None = None,
        limit: int = 1000,
    ) -> list[dict]:
        """Fetch transaction signatures for an address.

        Returns list of {signature, slot, blockTime, err, ...} ordered newest-first.
        `before` walks backward from a cursor; `until` stops at (and excludes)
        a checkpoint signature.
        """
        opts: dict = {"limit": limit, "commitment": COMMITMENT}
        if before is not None:
            opts["before"] = before
        if until is not None:
            opts["until"] = until

        result = await self._call("getSignaturesForAddress", [address, opts])
        if result is None:
            return []
        return result  # type: ignore[return-value]

    async def get_transaction(self, signature: str) -> dict | None:
        """Fetch a parsed transaction by signature.

        Uses jsonParsed encoding for human-readable token info.
        """
        opts = {
            "encoding": "jsonParsed",
            "commitment": COMMITMENT,
            "maxSupportedTransactionVersion": 0,
        }
        result = await self._call("getTransaction", [signature, opts])
        return result  # type: ignore[return-value]
