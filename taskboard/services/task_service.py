from __future__ import annotations

import logging
from datetime import datetime

from taskboard.domain.entities import CompletionEvent, Outcome, TaskEntity
from taskboard.domain.recurrence import RecurrenceRule
from taskboard.infra.repository import TaskRepository

from .orchestrator import CompletionOrchestrator

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, repo: TaskRepository, orchestrator: CompletionOrchestrator | None = None) -> None:
        self._repo = repo
        self._orchestrator = orchestrator or CompletionOrchestrator(repo)

    def get_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.get_task(task_id)

    def complete_task(self, task_id: str, user_id: str | None = None) -> Outcome | None:
        """Mark a task done and, for recurring tasks, generate the next one.

        Returns ``None`` for missing and non-recurring tasks. Only the
        transition to completed emits an event, so completing twice is a no-op.
        """
        current = self._repo.get_task(task_id)
        if not current:
            return None
        if current.completed_at is not None:
            logger.info("task %s is already completed", task_id)
            return None
        task = self._repo.update_task(task_id, {"completed_at": datetime.utcnow()})
        event = self._build_completion_event(task, user_id)
        if event is None:
            return None
        return self._orchestrator.handle(event)

    def _build_completion_event(self, task: TaskEntity, user_id: str | None) -> CompletionEvent | None:
        if not task.recurring_config or not task.due_date:
            return None

        rule = RecurrenceRule.from_dict(task.recurring_config)

        group_id = task.recurring_group_id
        if not group_id:
            # First completion of a series: the original task names the group.
            group_id = task.id
            self._repo.update_task(task.id, {"recurring_group_id": group_id})
            logger.info("started recurring series %s", group_id)

        return CompletionEvent(
            task_id=task.id,
            board_id=task.board_id,
            recurring_group_id=group_id,
            recurring_config=rule,
            completed_due_date=task.due_date,
            title=task.title,
            description=task.description,
            section=task.section,
            date_flexibility=task.date_flexibility,
            assignee_ids=tuple(self._repo.list_assignee_ids(task.id)),
            completed_by_user_id=user_id,
        )
