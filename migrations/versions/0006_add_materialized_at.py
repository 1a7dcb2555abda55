"""mark recurring instances whose materialization finished"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0006_add_materialized_at"
down_revision = "0005_unique_subtask_position"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("tasks", sa.Column("materialized_at", sa.DateTime(), nullable=True))


def downgrade() -> None:
    op.drop_column("tasks", "materialized_at")
