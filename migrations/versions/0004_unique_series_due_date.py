"""one task per series and due date"""
from __future__ import annotations

from alembic import op

revision = "0004_unique_series_due_date"
down_revision = "0003_add_task_assignees"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_unique_constraint(
        "uq_tasks_recurring_group_due", "tasks", ["recurring_group_id", "due_date"]
    )


def downgrade() -> None:
    op.drop_constraint("uq_tasks_recurring_group_due", "tasks", type_="unique")
