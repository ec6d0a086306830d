from stakeledger.db.repos.snapshot_repo import SnapshotRepo, SqlSnapshotStore

__all__ = ["SnapshotRepo", "SqlSnapshotStore"]
