from datetime import datetime, timezone
from decimal import Decimal

import pytest

from stakeledger.domain.models.staking import StakingSnapshotResult
from stakeledger.exceptions import FatalFetchError
from stakeledger.staking.service import StakingService
from stakeledger.workers import tasks


class TestTakeStakingSnapshot:
    async def test_returns_summary(self, monkeypatch):
        async def fake_compute(self, use_incremental=True, cancel_event=None):
            return StakingSnapshotResult(
                id=7,
                contract_address="Custody",
                timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
                total_staked=Decimal("12.5"),
                is_incremental=use_incremental,
                warnings=["w"],
            )

        monkeypatch.setattr(StakingService, "compute_staking_snapshot", fake_compute)

        result = await tasks._take_staking_snapshot_async(use_incremental=False)

        assert result == {
            "status": "ok",
            "snapshot_id": 7,
            "wallet_count": 0,
            "total_staked": "12.5",
            "is_incremental": False,
            "warnings": 1,
        }

    async def test_fatal_error_propagates_for_retry(self, monkeypatch):
        async def fake_compute(self, use_incremental=True, cancel_event=None):
            raise FatalFetchError("connectivity check failed")

        monkeypatch.setattr(StakingService, "compute_staking_snapshot", fake_compute)

        with pytest.raises(FatalFetchError):
            await tasks._take_staking_snapshot_async(use_incremental=True)

    async def test_unexpected_error_reported(self, monkeypatch):
        async def fake_compute(self, use_incremental=True, cancel_event=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(StakingService, "compute_staking_snapshot", fake_compute)

        result = await tasks._take_staking_snapshot_async(use_incremental=True)
        assert result == {"status": "error", "message": "boom"}
