from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _now() -> datetime:
    return datetime.now()


# PUBLIC_INTERFACE
class Priority(str, Enum):
    """Allowed task priorities."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def values(cls) -> List[str]:
        return [p.value for p in cls]


class Base(DeclarativeBase):
    pass


# PUBLIC_INTERFACE
class Task(Base):
    """
    A top-level work item.

    Owns a collection of Subtask rows through subtasks.task_id. The join is
    declared on the ORM side only: no database foreign key is created, and
    deleting a task leaves its subtasks untouched (passive_deletes="all").
    """

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(sa.Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    priority: Mapped[Priority] = mapped_column(
        sa.Enum(
            Priority,
            name="task_priority",
            values_callable=lambda enum_cls: [p.value for p in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=Priority.MEDIUM,
    )
    assignee: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(sa.DateTime, nullable=True)
    done: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False, default=_now, onupdate=_now)

    subtasks: Mapped[List["Subtask"]] = relationship(
        primaryjoin="Task.id == foreign(Subtask.task_id)",
        order_by="Subtask.id",
        passive_deletes="all",
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title!r}, done={self.done})>"


# PUBLIC_INTERFACE
class Subtask(Base):
    """A child work item owned by exactly one Task."""

    __tablename__ = "subtasks"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(sa.Integer, nullable=False, index=True)
    title: Mapped[str] = mapped_column(sa.Text, nullable=False)
    done: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False, default=_now, onupdate=_now)

    def __repr__(self) -> str:
        return f"<Subtask(id={self.id}, task_id={self.task_id}, title={self.title!r})>"
