"""Create the kv_store table

Revision ID: 20261018_kv_store
Revises:
Create Date: 2026-10-18

This migration creates the single key-value table that holds:
- player profiles under `player:{id}`
- match ledger entries under `match:{id}`
- group records under `group:{code}`

The version column backs optimistic locking for concurrent writers.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261018_kv_store"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create kv_store."""
    op.create_table(
        "kv_store",
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Drop kv_store."""
    op.drop_table("kv_store")
