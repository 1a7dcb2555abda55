"""add recurring config and series id"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_recurrence"
down_revision = "0001_create_boards_and_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("tasks", sa.Column("recurring_config", sa.JSON(), nullable=True))
    op.add_column("tasks", sa.Column("recurring_group_id", sa.String(length=36), nullable=True))
    op.create_index("ix_tasks_recurring_group_id", "tasks", ["recurring_group_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_tasks_recurring_group_id", table_name="tasks")
    op.drop_column("tasks", "recurring_group_id")
    op.drop_column("tasks", "recurring_config")
