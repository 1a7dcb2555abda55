from __future__ import annotations

import logging
from datetime import date

from taskboard.config import SETTINGS
from taskboard.domain.entities import BoardDefaults, CompletionEvent, SubtaskSnapshot
from taskboard.domain.errors import DuplicateCloneError
from taskboard.domain.store import TaskStore

logger = logging.getLogger(__name__)


def shifted_due_date(
    subtask_due: date | None,
    completed_due: date | None,
    next_due: date | None,
) -> date | None:
    """Carry a subtask's day offset from its parent over to the next instance."""
    if subtask_due is None or completed_due is None or next_due is None:
        return None
    return next_due + (subtask_due - completed_due)


class TaskMaterializer:
    """Creates the next task of a series and clones its subtasks.

    Each public method is one orchestrator step and talks to the store on its
    own, so a retried step repeats only its own writes.
    """

    def __init__(self, store: TaskStore, default_status: str = SETTINGS.default_status) -> None:
        self._store = store
        self._default_status = default_status

    def resolve_board_defaults(self, board_id: str) -> BoardDefaults:
        options = sorted(self._store.query_board_status_options(board_id), key=lambda opt: opt.position)
        status = options[0].id if options else self._default_status
        position = self._store.query_max_position(board_id) + 1
        return BoardDefaults(status=status, position=position)

    def create_task(self, event: CompletionEvent, next_due: date, defaults: BoardDefaults) -> str:
        task_id = self._store.insert_task({
            "id": self._store.new_id(),
            "board_id": event.board_id,
            "parent_task_id": None,
            "title": event.title,
            "description": event.description,
            "status": defaults.status,
            "section": event.section,
            "due_date": next_due,
            "date_flexibility": event.date_flexibility.value,
            "recurring_config": event.recurring_config.to_dict(),
            "recurring_group_id": event.recurring_group_id,
            "position": defaults.position,
            "created_by": event.completed_by_user_id,
        })
        logger.info(
            "created task %s in series %s due %s", task_id, event.recurring_group_id, next_due
        )
        return task_id

    def attach_assignees(self, task_id: str, user_ids: tuple[str, ...] | list[str]) -> None:
        if user_ids:
            self._store.insert_task_assignees(task_id, list(user_ids))

    def query_subtasks(self, parent_task_id: str) -> list[SubtaskSnapshot]:
        return self._store.query_subtasks_with_assignees(parent_task_id)

    def clone_subtasks(
        self,
        event: CompletionEvent,
        new_task_id: str,
        next_due: date,
        defaults: BoardDefaults,
        subtasks: list[SubtaskSnapshot],
    ) -> list[tuple[str, SubtaskSnapshot]]:
        """Return ``(clone_id, source)`` pairs in source order.

        A parent holds at most one subtask per position, so clones left behind
        by an interrupted run, or inserted by a concurrent run of the same
        event, are reused instead of inserted again.
        """
        if not subtasks:
            return []

        already_cloned = {
            clone.position: clone.id
            for clone in self._store.query_subtasks_with_assignees(new_task_id)
        }

        clones: list[tuple[str, SubtaskSnapshot]] = []
        for subtask in subtasks:
            existing_id = already_cloned.pop(subtask.position, None)
            if existing_id:
                clones.append((existing_id, subtask))
                continue
            try:
                clone_id = self._insert_clone(event, new_task_id, next_due, defaults, subtask)
            except DuplicateCloneError as exc:
                logger.info("subtask at position %s of task %s already cloned", subtask.position, new_task_id)
                clone_id = exc.existing_id
            clones.append((clone_id, subtask))

        logger.info("cloned %s subtask(s) onto task %s", len(clones), new_task_id)
        return clones

    def attach_subtask_assignees(self, clones: list[tuple[str, SubtaskSnapshot]]) -> None:
        for clone_id, source in clones:
            self.attach_assignees(clone_id, source.assignee_ids)

    def _insert_clone(
        self,
        event: CompletionEvent,
        new_task_id: str,
        next_due: date,
        defaults: BoardDefaults,
        subtask: SubtaskSnapshot,
    ) -> str:
        return self._store.insert_task({
            "id": self._store.new_id(),
            "board_id": event.board_id,
            "parent_task_id": new_task_id,
            "title": subtask.title,
            "description": subtask.description,
            "status": defaults.status,
            "section": subtask.section,
            "due_date": shifted_due_date(subtask.due_date, event.completed_due_date, next_due),
            "date_flexibility": subtask.date_flexibility.value,
            "recurring_config": None,
            "recurring_group_id": None,
            "position": subtask.position,
            "created_by": event.completed_by_user_id,
        })
