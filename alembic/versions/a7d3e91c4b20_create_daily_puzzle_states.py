"""Create daily_puzzle_states

Revision ID: a7d3e91c4b20
Revises:
Create Date: 2026-10-18 10:05:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "a7d3e91c4b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    # create_all() en el arranque puede haberla creado antes
    if _table_exists("daily_puzzle_states"):
        return
    op.create_table(
        "daily_puzzle_states",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("storage_key", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("owner_id", "storage_key", name="uq_daily_puzzle_states_owner_key"),
    )
    op.create_index("ix_daily_puzzle_states_id", "daily_puzzle_states", ["id"])
    op.create_index("ix_daily_puzzle_states_owner_id", "daily_puzzle_states", ["owner_id"])


def downgrade() -> None:
    if not _table_exists("daily_puzzle_states"):
        return
    op.drop_index("ix_daily_puzzle_states_owner_id", table_name="daily_puzzle_states")
    op.drop_index("ix_daily_puzzle_states_id", table_name="daily_puzzle_states")
    op.drop_table("daily_puzzle_states")
