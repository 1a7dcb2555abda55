from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from taskboard.domain.entities import StatusOption, SubtaskSnapshot, TaskEntity
from taskboard.domain.enums import DateFlexibility
from taskboard.domain.errors import DuplicateCloneError, DuplicateInstanceError, TransientStoreError

from .db import SessionLocal
from .models import BoardModel, TaskAssigneeModel, TaskModel, utcnow

logger = logging.getLogger(__name__)


def _to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        board_id=model.board_id,
        parent_task_id=model.parent_task_id,
        title=model.title,
        description=model.description,
        status=model.status,
        section=model.section,
        due_date=model.due_date,
        date_flexibility=DateFlexibility(model.date_flexibility),
        recurring_config=model.recurring_config,
        recurring_group_id=model.recurring_group_id,
        position=model.position,
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
        completed_at=model.completed_at,
        archived_at=model.archived_at,
    )


class TaskRepository:
    """SQLAlchemy-backed store used by the recurring-task engine."""

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
            logger.warning("store unavailable: %s", exc)
            raise TransientStoreError(str(exc)) from exc

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._session() as session:
            task = session.get(TaskModel, task_id)
            return _to_entity(task) if task else None

    def update_task(self, task_id: str, data: dict) -> Optional[TaskEntity]:
        with self._session() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                return None
            for key, value in data.items():
                setattr(task, key, value)
            session.commit()
            session.refresh(task)
            return _to_entity(task)

    def list_assignee_ids(self, task_id: str) -> list[str]:
        with self._session() as session:
            stmt = (
                select(TaskAssigneeModel.user_id)
                .where(TaskAssigneeModel.task_id == task_id)
                .order_by(TaskAssigneeModel.assigned_at.asc(), TaskAssigneeModel.user_id.asc())
            )
            return list(session.scalars(stmt))

    def insert_task(self, fields: dict) -> str:
        fields = dict(fields)
        fields.setdefault("id", self.new_id())
        with self._session() as session:
            task = TaskModel(**fields)
            session.add(task)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if fields.get("recurring_group_id") is not None and self._find_instance(
                    session, fields["recurring_group_id"], fields.get("due_date")
                ):
                    raise DuplicateInstanceError(
                        f"series {fields['recurring_group_id']} already has a task due {fields.get('due_date')}"
                    ) from exc
                if fields.get("parent_task_id") is not None:
                    clone_id = self._find_subtask_at(session, fields["parent_task_id"], fields.get("position"))
                    if clone_id:
                        raise DuplicateCloneError(
                            f"task {fields['parent_task_id']} already has a subtask at position "
                            f"{fields.get('position')}",
                            clone_id,
                        ) from exc
                raise
            return fields["id"]

    def insert_task_assignees(self, task_id: str, user_ids: list[str]) -> None:
        """Add the users not yet assigned to the task.

        A concurrent writer can commit the same pair between our read and our
        commit; the batch is then rolled back and re-read once.
        """
        if not user_ids:
            return
        with self._session() as session:
            for attempt in range(2):
                existing = self._assignee_ids(session, task_id)
                for user_id in dict.fromkeys(user_ids):
                    if user_id not in existing:
                        session.add(TaskAssigneeModel(task_id=task_id, user_id=user_id))
                try:
                    session.commit()
                    return
                except IntegrityError:
                    session.rollback()
                    if attempt:
                        raise
                    logger.info("assignees of task %s changed concurrently, re-reading", task_id)

    def is_instance_complete(self, task_id: str) -> bool:
        with self._session() as session:
            return session.scalar(
                select(TaskModel.materialized_at).where(TaskModel.id == task_id)
            ) is not None

    def mark_instance_complete(self, task_id: str) -> None:
        with self._session() as session:
            task = session.get(TaskModel, task_id)
            if task and task.materialized_at is None:
                task.materialized_at = utcnow()
                session.commit()

    def query_board_status_options(self, board_id: str) -> list[StatusOption]:
        with self._session() as session:
            board = session.get(BoardModel, board_id)
            if not board or not board.status_options:
                return []
            options = [
                StatusOption(
                    id=option["id"],
                    position=int(option.get("position", index)),
                    label=option.get("label", ""),
                )
                for index, option in enumerate(board.status_options)
            ]
            return sorted(options, key=lambda option: option.position)

    def query_max_position(self, board_id: str) -> int:
        with self._session() as session:
            return self._max_position(session, board_id)

    def query_subtasks_with_assignees(self, parent_task_id: str) -> list[SubtaskSnapshot]:
        with self._session() as session:
            subtasks = list(
                session.scalars(
                    select(TaskModel)
                    .where(TaskModel.parent_task_id == parent_task_id)
                    .order_by(TaskModel.position.asc(), TaskModel.created_at.asc())
                )
            )
            if not subtasks:
                return []

            assignees: dict[str, list[str]] = {}
            rows = session.execute(
                select(TaskAssigneeModel.task_id, TaskAssigneeModel.user_id)
                .where(TaskAssigneeModel.task_id.in_([subtask.id for subtask in subtasks]))
                .order_by(TaskAssigneeModel.assigned_at.asc(), TaskAssigneeModel.user_id.asc())
            )
            for row in rows:
                assignees.setdefault(row.task_id, []).append(row.user_id)

            return [
                SubtaskSnapshot(
                    id=subtask.id,
                    title=subtask.title,
                    description=subtask.description,
                    section=subtask.section,
                    due_date=subtask.due_date,
                    date_flexibility=DateFlexibility(subtask.date_flexibility),
                    position=subtask.position,
                    assignee_ids=tuple(assignees.get(subtask.id, [])),
                )
                for subtask in subtasks
            ]

    def count_tasks_by_recurring_group(self, group_id: str) -> int:
        with self._session() as session:
            return session.scalar(
                select(func.count())
                .select_from(TaskModel)
                .where(TaskModel.recurring_group_id == group_id)
            ) or 0

    def find_existing_instance(self, group_id: str, due_date: date) -> Optional[str]:
        with self._session() as session:
            return self._find_instance(session, group_id, due_date)

    @staticmethod
    def _find_instance(session: Session, group_id: str, due_date: date | None) -> Optional[str]:
        return session.scalar(
            select(TaskModel.id)
            .where(TaskModel.recurring_group_id == group_id, TaskModel.due_date == due_date)
            .limit(1)
        )

    @staticmethod
    def _find_subtask_at(session: Session, parent_task_id: str, position: int | None) -> Optional[str]:
        return session.scalar(
            select(TaskModel.id)
            .where(TaskModel.parent_task_id == parent_task_id, TaskModel.position == position)
            .limit(1)
        )

    @staticmethod
    def _assignee_ids(session: Session, task_id: str) -> set[str]:
        return set(
            session.scalars(
                select(TaskAssigneeModel.user_id).where(TaskAssigneeModel.task_id == task_id)
            )
        )

    @staticmethod
    def _max_position(session: Session, board_id: str) -> int:
        max_position = session.scalar(
            select(func.max(TaskModel.position)).where(TaskModel.board_id == board_id)
        )
        return -1 if max_position is None else max_position
