from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .entities import StatusOption, SubtaskSnapshot


class TaskStore(Protocol):
    """Store operations the recurring-task engine needs.

    ``insert_task`` raises ``DuplicateInstanceError`` when the series already
    has a task on that due date and ``DuplicateCloneError`` when the parent
    already has a subtask at that position. ``insert_task_assignees`` skips
    pairs that already exist.
    """

    def new_id(self) -> str: ...

    def insert_task(self, fields: dict) -> str: ...

    def insert_task_assignees(self, task_id: str, user_ids: list[str]) -> None: ...

    def query_board_status_options(self, board_id: str) -> list[StatusOption]: ...

    def query_max_position(self, board_id: str) -> int: ...

    def query_subtasks_with_assignees(self, parent_task_id: str) -> list[SubtaskSnapshot]: ...

    def count_tasks_by_recurring_group(self, group_id: str) -> int: ...

    def find_existing_instance(self, group_id: str, due_date: date) -> Optional[str]: ...

    def is_instance_complete(self, task_id: str) -> bool: ...

    def mark_instance_complete(self, task_id: str) -> None: ...
