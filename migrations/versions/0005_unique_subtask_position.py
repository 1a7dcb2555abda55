"""one subtask per parent and position"""
from __future__ import annotations

from alembic import op

revision = "0005_unique_subtask_position"
down_revision = "0004_unique_series_due_date"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_unique_constraint(
        "uq_tasks_parent_position", "tasks", ["parent_task_id", "position"]
    )


def downgrade() -> None:
    op.drop_constraint("uq_tasks_parent_position", "tasks", type_="unique")
