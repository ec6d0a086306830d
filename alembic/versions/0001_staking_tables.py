"""staking snapshot tables

Revision ID: 0001_staking
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_staking"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "staking_snapshots",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("contract_address", sa.String(64), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_staked", sa.Numeric(38, 18), nullable=False),
        sa.Column("total_locked", sa.Numeric(38, 18), nullable=False),
        sa.Column("total_unlocked", sa.Numeric(38, 18), nullable=False),
        sa.Column("last_signature", sa.String(100), nullable=True),
        sa.Column("is_incremental", sa.Boolean(), nullable=False),
        sa.Column("on_chain_balance", sa.Numeric(38, 18), nullable=True),
        sa.Column("warnings", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_staking_snapshots")),
    )
    op.create_index(op.f("ix_staking_snapshots_timestamp"), "staking_snapshots", ["timestamp"])
    op.create_index(op.f("ix_staking_snapshots_last_signature"), "staking_snapshots", ["last_signature"])

    op.create_table(
        "staking_wallet_data",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column(
            "snapshot_id", sa.BigInteger(),
            sa.ForeignKey(
                "staking_snapshots.id",
                name=op.f("fk_staking_wallet_data_snapshot_id_staking_snapshots"),
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column("wallet_address", sa.String(64), nullable=False),
        sa.Column("total_staked", sa.Numeric(38, 18), nullable=False),
        sa.Column("total_locked", sa.Numeric(38, 18), nullable=False),
        sa.Column("total_unlocked", sa.Numeric(38, 18), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_staking_wallet_data")),
    )
    op.create_index(op.f("ix_staking_wallet_data_snapshot_id"), "staking_wallet_data", ["snapshot_id"])
    op.create_index(op.f("ix_staking_wallet_data_wallet_address"), "staking_wallet_data", ["wallet_address"])

    op.create_table(
        "staking_stakes",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column(
            "snapshot_id", sa.BigInteger(),
            sa.ForeignKey(
                "staking_snapshots.id",
                name=op.f("fk_staking_stakes_snapshot_id_staking_snapshots"),
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column("wallet_address", sa.String(64), nullable=False),
        sa.Column("mint_address", sa.String(64), nullable=False),
        sa.Column("amount", sa.Numeric(38, 18), nullable=False),
        sa.Column("stake_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("unlock_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_staking_stakes")),
    )
    op.create_index("ix_staking_stakes_snapshot_wallet", "staking_stakes", ["snapshot_id", "wallet_address"])
    op.create_index(op.f("ix_staking_stakes_wallet_address"), "staking_stakes", ["wallet_address"])
    op.create_index(op.f("ix_staking_stakes_unlock_date"), "staking_stakes", ["unlock_date"])


def downgrade() -> None:
    op.drop_index(op.f("ix_staking_stakes_unlock_date"), table_name="staking_stakes")
    op.drop_index(op.f("ix_staking_stakes_wallet_address"), table_name="staking_stakes")
    op.drop_index("ix_staking_stakes_snapshot_wallet", table_name="staking_stakes")
    op.drop_table("staking_stakes")
    op.drop_index(op.f("ix_staking_wallet_data_wallet_address"), table_name="staking_wallet_data")
    op.drop_index(op.f("ix_staking_wallet_data_snapshot_id"), table_name="staking_wallet_data")
    op.drop_table("staking_wallet_data")
    op.drop_index(op.f("ix_staking_snapshots_last_signature"), table_name="staking_snapshots")
    op.drop_index(op.f("ix_staking_snapshots_timestamp"), table_name="staking_snapshots")
    op.drop_table("staking_snapshots")
