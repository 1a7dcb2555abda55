from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint

from .db import Base


def utcnow() -> datetime:
    return datetime.utcnow()


class BoardModel(Base):
    __tablename__ = "boards"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    status_options = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class TaskModel(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint("recurring_group_id", "due_date", name="uq_tasks_recurring_group_due"),
        UniqueConstraint("parent_task_id", "position", name="uq_tasks_parent_position"),
    )

    id = Column(String(36), primary_key=True)
    board_id = Column(String(36), ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(JSON, nullable=True)
    status = Column(String(100), nullable=False)
    section = Column(String(100), nullable=True)
    due_date = Column(Date, nullable=True)
    date_flexibility = Column(String(20), nullable=False, default="not_set")
    recurring_config = Column(JSON, nullable=True)
    recurring_group_id = Column(String(36), nullable=True, index=True)
    position = Column(Integer, nullable=False, default=0)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, nullable=True)
    # set once the next instance and all its clones are in place
    materialized_at = Column(DateTime, nullable=True)


class TaskAssigneeModel(Base):
    __tablename__ = "task_assignees"

    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), primary_key=True)
    assigned_at = Column(DateTime, nullable=False, default=utcnow)
