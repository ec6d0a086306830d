import asyncio
import json
import time

import httpx
import pytest

from stakeledger.infra.http.rate_limited_client import RateLimitedClient


def _echo_transport(seen: list[dict]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "ok"})

    return httpx.MockTransport(handler)


class TestRateLimitedClient:
    async def test_posts_json(self):
        seen: list[dict] = []
        async with RateLimitedClient(rate_per_second=1000, transport=_echo_transport(seen)) as client:
            resp = await client.post("https://rpc.test", json={"method": "getVersion"})

        assert resp.status_code == 200
        assert resp.json()["result"] == "ok"
        assert seen == [{"method": "getVersion"}]
        assert client.request_count == 1

    async def test_spaces_concurrent_requests(self):
        seen: list[dict] = []
        async with RateLimitedClient(rate_per_second=20, transport=_echo_transport(seen)) as client:
            start = time.monotonic()
            await asyncio.gather(*(client.post("https://rpc.test", json={"n": i}) for i in range(4)))
            elapsed = time.monotonic() - start

        assert len(seen) == 4
        # First request goes immediately, the next three wait 50ms each
        assert elapsed >= 0.14

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            RateLimitedClient(rate_per_second=0)
