import asyncio
import logging
import time

import httpx

logger = logging.getLogger(__name__)


class RateLimitedClient:
    """Async HTTP client that spaces requests at least 1/rate_per_second apart.

    Slots are handed out under a lock, so a batch of concurrent RPC calls
    (see CustodyTxFetcher) is spread over time instead of bursting.
    """

    def __init__(
        self,
        rate_per_second: float = 5.0,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")
        self._min_interval = 1.0 / rate_per_second
        self._next_slot = 0.0
        self._lock = asyncio.Lock()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self.request_count = 0

    async def _wait_for_slot(self) -> None:
        async with self._lock:
            now = time.monotonic()
            delay = self._next_slot - now
            if delay > 0:
                await asyncio.sleep(delay)
            self._next_slot = max(now, self._next_slot) + self._min_interval
            self.request_count += 1

    async def post(self, url: str, json: dict | list | None = None) -> httpx.Response:
        await self._wait_for_slot()
        method = json.get("method") if isinstance(json, dict) else None
        logger.debug("POST #%d %s", self.request_count, method or url)
        return await self._client.post(url, json=json)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
