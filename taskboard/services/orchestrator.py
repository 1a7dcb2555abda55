"""Completion-triggered generation of the next task in a recurring series.

One event per completed occurrence. The steps run strictly in order and each
is retried on its own by the step runner. Steps after ``create-task`` are not
atomic, so every run first looks for an instance already created for the
same ``(recurring_group_id, due_date)`` and resumes it rather than inserting
a second one. The last step marks the instance complete; after that a
redelivered event leaves it alone.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable

from taskboard.config import SETTINGS
from taskboard.domain.entities import CompletionEvent, Outcome
from taskboard.domain.errors import DuplicateInstanceError, RecurrenceError
from taskboard.domain.store import TaskStore

from .evaluator import local_date, next_due_date
from .limiter import should_continue
from .materializer import TaskMaterializer
from .steps import StepRunner

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompletionOrchestrator:
    def __init__(
        self,
        store: TaskStore,
        clock: Callable[[], datetime] = _utcnow,
        runner: StepRunner | None = None,
        materializer: TaskMaterializer | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._runner = runner or StepRunner()
        self._materializer = materializer or TaskMaterializer(store)

    def handle(self, event: CompletionEvent | dict[str, Any]) -> Outcome:
        if isinstance(event, dict):
            event = CompletionEvent.from_payload(event)

        run = self._runner.run
        rule = event.recurring_config
        group_id = event.recurring_group_id

        count = run("count-occurrences", self._store.count_tasks_by_recurring_group, group_id)
        limit_ok = run("check-limit", should_continue, rule, count)

        today = self._today()
        next_due = run("evaluate", next_due_date, rule, event.completed_due_date, today)

        if not limit_ok:
            # A crash after create-task on the last allowed occurrence leaves
            # the count at the limit; finish that instance instead of stopping.
            existing = None
            if next_due is not None:
                existing = run("find-existing-instance", self._store.find_existing_instance, group_id, next_due)
            if existing is None:
                logger.info("series %s ended after %s occurrence(s)", group_id, count)
                return Outcome.series_ended()
            logger.info("series %s at its limit, resuming instance %s", group_id, existing)
            return self._materialize(event, next_due, existing)

        if next_due is None:
            logger.info("series %s has no occurrence after %s", group_id, event.completed_due_date)
            return Outcome.no_next_occurrence()

        existing = run("find-existing-instance", self._store.find_existing_instance, group_id, next_due)
        return self._materialize(event, next_due, existing)

    def _materialize(self, event: CompletionEvent, next_due: date, existing: str | None) -> Outcome:
        run = self._runner.run
        materializer = self._materializer

        defaults = run("resolve-board-defaults", materializer.resolve_board_defaults, event.board_id)

        resumed = existing is not None
        if existing is None:
            try:
                new_task_id = run("create-task", materializer.create_task, event, next_due, defaults)
            except DuplicateInstanceError:
                # A concurrent run for the same occurrence won the insert.
                existing = run(
                    "find-existing-instance",
                    self._store.find_existing_instance,
                    event.recurring_group_id,
                    next_due,
                )
                if existing is None:
                    raise RecurrenceError(
                        f"duplicate instance reported for series {event.recurring_group_id} "
                        f"due {next_due} but none found"
                    ) from None
                new_task_id, resumed = existing, True
        else:
            new_task_id = existing

        if resumed:
            if run("check-instance-complete", self._store.is_instance_complete, new_task_id):
                # Redelivered event: the instance is finished and may have been
                # edited since, so it is left untouched.
                logger.info("task %s for %s already materialized", new_task_id, next_due)
                clones = run("query-subtasks", materializer.query_subtasks, new_task_id)
                return Outcome.materialized(
                    new_task_id, next_due, [clone.id for clone in clones], resumed=True
                )
            logger.info("task %s already exists for %s, resuming", new_task_id, next_due)

        run("attach-assignees", materializer.attach_assignees, new_task_id, event.assignee_ids)
        subtasks = run("query-subtasks", materializer.query_subtasks, event.task_id)
        clones = run(
            "clone-subtasks", materializer.clone_subtasks, event, new_task_id, next_due, defaults, subtasks
        )
        run("attach-subtask-assignees", materializer.attach_subtask_assignees, clones)
        run("mark-instance-complete", self._store.mark_instance_complete, new_task_id)

        return Outcome.materialized(
            new_task_id, next_due, [clone_id for clone_id, _ in clones], resumed=resumed
        )

    def _today(self) -> date:
        now = self._clock()
        if isinstance(now, datetime):
            return local_date(now, SETTINGS.org_utc_offset)
        return now
