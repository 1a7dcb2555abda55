"""add task assignees table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_add_task_assignees"
down_revision = "0002_add_recurrence"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "task_assignees",
        sa.Column(
            "task_id",
            sa.String(length=36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", sa.String(length=36), primary_key=True),
        sa.Column("assigned_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("task_assignees")
