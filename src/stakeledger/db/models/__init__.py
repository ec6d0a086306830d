from stakeledger.db.models.staking import StakeRecord, StakingSnapshotRecord, StakingWalletRecord

__all__ = [
    "StakeRecord",
    "StakingSnapshotRecord",
    "StakingWalletRecord",
]
