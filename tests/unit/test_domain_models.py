from datetime import datetime, timezone
from decimal import Decimal

from stakeledger.domain.models.staking import Stake, StakingSnapshotResult, WalletStakeSummary, canonical_amount

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _stake(amount: str) -> Stake:
    return Stake(amount=Decimal(amount), stake_date=NOW, unlock_date=NOW, is_locked=True, mint_address="Mint")


class TestCanonicalAmount:
    def test_strips_trailing_zeros(self):
        assert str(canonical_amount(Decimal("60.000000"))) == "60"
        assert str(canonical_amount(Decimal("60.000000000000000000"))) == "60"
        assert str(canonical_amount(Decimal("2.500000000000000000"))) == "2.5"

    def test_integers_keep_plain_notation(self):
        assert str(canonical_amount(Decimal("1200.00"))) == "1200"
        assert str(canonical_amount(Decimal("0E-18"))) == "0"


class TestAmountScale:
    def test_stake_json_independent_of_scale(self):
        assert _stake("60.000000").model_dump_json() == _stake("60.000000000000000000").model_dump_json()

    def test_wallet_totals(self):
        summary = WalletStakeSummary(
            wallet_address="W",
            total_staked=Decimal("30.500000"),
            total_locked=Decimal("30.500000000000000000"),
            total_unlocked=Decimal("0E-18"),
        )
        assert str(summary.total_staked) == "30.5"
        assert str(summary.total_locked) == "30.5"
        assert str(summary.total_unlocked) == "0"

    def test_snapshot_totals(self):
        result = StakingSnapshotResult(
            contract_address="C",
            timestamp=NOW,
            total_staked=Decimal("300.000000"),
            on_chain_balance=Decimal("300.000000000000000000"),
        )
        assert str(result.total_staked) == "300"
        assert str(result.on_chain_balance) == "300"
