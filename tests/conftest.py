from __future__ import annotations

import itertools
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskboard.domain.entities import StatusOption, SubtaskSnapshot
from taskboard.domain.enums import DateFlexibility
from taskboard.domain.errors import DuplicateCloneError, DuplicateInstanceError, TransientStoreError
from taskboard.infra.db import create_schema
from taskboard.infra.models import BoardModel
from taskboard.infra.repository import TaskRepository
from taskboard.services.orchestrator import CompletionOrchestrator
from taskboard.services.steps import StepRunner

BOARD_ID = "board-1"


class FakeStore:
    """In-memory stand-in for TaskRepository with failure injection."""

    def __init__(self) -> None:
        self.tasks: dict[str, dict] = {}
        self.assignees: dict[str, list[str]] = {}
        self.status_options: dict[str, list[StatusOption]] = {}
        # method name -> number of upcoming calls that raise TransientStoreError
        self.failures: dict[str, int] = {}
        # crash (non-transient) on the Nth insert_task call
        self.crash_on_insert: int | None = None
        self.insert_calls = 0
        self._ids = itertools.count(1)

    def new_id(self) -> str:
        return f"task-{next(self._ids)}"

    def add_task(self, **fields) -> str:
        task = {
            "id": self.new_id(),
            "board_id": BOARD_ID,
            "parent_task_id": None,
            "title": "",
            "description": None,
            "status": "todo",
            "section": None,
            "due_date": None,
            "date_flexibility": "not_set",
            "recurring_config": None,
            "recurring_group_id": None,
            "position": 0,
            "created_by": None,
            "materialized_at": None,
        }
        assignees = fields.pop("assignees", [])
        task.update(fields)
        self.tasks[task["id"]] = task
        self.assignees[task["id"]] = list(assignees)
        return task["id"]

    def parents_in_group(self, group_id: str) -> list[dict]:
        return [t for t in self.tasks.values() if t["recurring_group_id"] == group_id]

    def children_of(self, parent_id: str) -> list[dict]:
        return sorted(
            (t for t in self.tasks.values() if t["parent_task_id"] == parent_id),
            key=lambda t: t["position"],
        )

    def _maybe_fail(self, name: str) -> None:
        remaining = self.failures.get(name, 0)
        if remaining:
            self.failures[name] = remaining - 1
            raise TransientStoreError(f"{name} timed out")

    def _instance_for(self, group_id: str, due_date: date) -> str | None:
        for task in self.tasks.values():
            if task["recurring_group_id"] == group_id and task["due_date"] == due_date:
                return task["id"]
        return None

    def _subtask_at(self, parent_task_id: str, position: int) -> str | None:
        for task in self.tasks.values():
            if task["parent_task_id"] == parent_task_id and task["position"] == position:
                return task["id"]
        return None

    def insert_task(self, fields: dict) -> str:
        self._maybe_fail("insert_task")
        self.insert_calls += 1
        if self.crash_on_insert is not None and self.insert_calls == self.crash_on_insert:
            raise RuntimeError("worker died")
        group_id = fields.get("recurring_group_id")
        if group_id and self._instance_for(group_id, fields["due_date"]):
            raise DuplicateInstanceError(f"{group_id} already has {fields['due_date']}")
        parent_id = fields.get("parent_task_id")
        if parent_id:
            clone_id = self._subtask_at(parent_id, fields["position"])
            if clone_id:
                raise DuplicateCloneError(f"{parent_id} already has position {fields['position']}", clone_id)
        self.tasks[fields["id"]] = {"materialized_at": None, **fields}
        self.assignees.setdefault(fields["id"], [])
        return fields["id"]

    def insert_task_assignees(self, task_id: str, user_ids: list[str]) -> None:
        self._maybe_fail("insert_task_assignees")
        current = self.assignees.setdefault(task_id, [])
        for user_id in user_ids:
            if user_id not in current:
                current.append(user_id)

    def query_board_status_options(self, board_id: str) -> list[StatusOption]:
        self._maybe_fail("query_board_status_options")
        return list(self.status_options.get(board_id, []))

    def query_max_position(self, board_id: str) -> int:
        self._maybe_fail("query_max_position")
        positions = [t["position"] for t in self.tasks.values() if t["board_id"] == board_id]
        return max(positions, default=-1)

    def query_subtasks_with_assignees(self, parent_task_id: str) -> list[SubtaskSnapshot]:
        self._maybe_fail("query_subtasks_with_assignees")
        return [
            SubtaskSnapshot(
                id=t["id"],
                title=t["title"],
                description=t["description"],
                section=t["section"],
                due_date=t["due_date"],
                date_flexibility=DateFlexibility(t["date_flexibility"]),
                position=t["position"],
                assignee_ids=tuple(self.assignees.get(t["id"], [])),
            )
            for t in self.children_of(parent_task_id)
        ]

    def count_tasks_by_recurring_group(self, group_id: str) -> int:
        self._maybe_fail("count_tasks_by_recurring_group")
        return len(self.parents_in_group(group_id))

    def find_existing_instance(self, group_id: str, due_date: date) -> str | None:
        self._maybe_fail("find_existing_instance")
        return self._instance_for(group_id, due_date)

    def is_instance_complete(self, task_id: str) -> bool:
        self._maybe_fail("is_instance_complete")
        return self.tasks[task_id]["materialized_at"] is not None

    def mark_instance_complete(self, task_id: str) -> None:
        self._maybe_fail("mark_instance_complete")
        self.tasks[task_id]["materialized_at"] = datetime(2025, 6, 6, 17, 0)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2025, 6, 6, 17, 0, tzinfo=timezone.utc)


@pytest.fixture
def orchestrator(store: FakeStore, fixed_clock) -> CompletionOrchestrator:
    return CompletionOrchestrator(store, clock=fixed_clock, runner=StepRunner(retry_delay=0))


@pytest.fixture
def sqlite_sessions() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def sqlite_repo(sqlite_sessions: sessionmaker) -> TaskRepository:
    return TaskRepository(sqlite_sessions)


@pytest.fixture
def make_board(sqlite_sessions: sessionmaker):
    def make(name: str, status_options: list[dict] | None = None) -> str:
        with sqlite_sessions() as session:
            board = BoardModel(id=TaskRepository.new_id(), name=name, status_options=status_options or [])
            session.add(board)
            session.commit()
            return board.id

    return make
