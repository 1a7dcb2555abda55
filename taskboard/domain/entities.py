from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from .enums import DateFlexibility, OutcomeKind
from .errors import ValidationError
from .recurrence import RecurrenceRule


@dataclass(frozen=True)
class TaskEntity:
    id: str
    board_id: str
    parent_task_id: Optional[str]
    title: str
    description: Optional[dict]
    status: str
    section: Optional[str]
    due_date: Optional[date]
    date_flexibility: DateFlexibility
    recurring_config: Optional[dict]
    recurring_group_id: Optional[str]
    position: int
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime]
    archived_at: Optional[datetime]


@dataclass(frozen=True)
class StatusOption:
    id: str
    position: int
    label: str = ""


@dataclass(frozen=True)
class SubtaskSnapshot:
    """A subtask as read for cloning, together with its own assignees."""

    id: str
    title: str
    description: Optional[dict]
    section: Optional[str]
    due_date: Optional[date]
    date_flexibility: DateFlexibility
    position: int
    assignee_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class BoardDefaults:
    status: str
    position: int


@dataclass(frozen=True)
class CompletionEvent:
    task_id: str
    board_id: str
    recurring_group_id: str
    recurring_config: RecurrenceRule
    completed_due_date: Optional[date]
    title: str
    description: Optional[dict]
    section: Optional[str]
    date_flexibility: DateFlexibility
    assignee_ids: tuple[str, ...]
    completed_by_user_id: Optional[str]

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "CompletionEvent":
        missing = [key for key in ("taskId", "boardId", "recurringGroupId", "recurringConfig") if not data.get(key)]
        if missing:
            raise ValidationError(f"completion event is missing {', '.join(missing)}", missing[0])

        due = data.get("completedDueDate")
        if isinstance(due, str):
            try:
                due = date.fromisoformat(due)
            except ValueError:
                raise ValidationError("completedDueDate must be YYYY-MM-DD", "completedDueDate") from None

        try:
            flexibility = DateFlexibility(data.get("dateFlexibility") or DateFlexibility.NOT_SET)
        except ValueError:
            raise ValidationError("unknown dateFlexibility", "dateFlexibility") from None

        return cls(
            task_id=data["taskId"],
            board_id=data["boardId"],
            recurring_group_id=data["recurringGroupId"],
            recurring_config=RecurrenceRule.from_dict(data["recurringConfig"]),
            completed_due_date=due,
            title=data.get("title", ""),
            description=data.get("description"),
            section=data.get("section"),
            date_flexibility=flexibility,
            assignee_ids=tuple(data.get("assigneeIds") or ()),
            completed_by_user_id=data.get("completedByUserId"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "boardId": self.board_id,
            "recurringGroupId": self.recurring_group_id,
            "recurringConfig": self.recurring_config.to_dict(),
            "completedDueDate": self.completed_due_date.isoformat() if self.completed_due_date else None,
            "title": self.title,
            "description": self.description,
            "section": self.section,
            "dateFlexibility": self.date_flexibility.value,
            "assigneeIds": list(self.assignee_ids),
            "completedByUserId": self.completed_by_user_id,
        }


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    new_task_id: Optional[str] = None
    next_due_date: Optional[date] = None
    cloned_subtask_ids: tuple[str, ...] = field(default_factory=tuple)
    resumed: bool = False

    @classmethod
    def materialized(cls, task_id: str, due: date, subtask_ids: list[str], resumed: bool = False) -> "Outcome":
        return cls(OutcomeKind.MATERIALIZED, task_id, due, tuple(subtask_ids), resumed)

    @classmethod
    def series_ended(cls) -> "Outcome":
        return cls(OutcomeKind.SERIES_ENDED)

    @classmethod
    def no_next_occurrence(cls) -> "Outcome":
        return cls(OutcomeKind.NO_NEXT_OCCURRENCE)
