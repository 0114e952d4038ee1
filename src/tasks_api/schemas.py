from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator

from .models import Priority

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _naive_local(value: datetime) -> datetime:
    # DateTime columns are stored without an offset
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize due_date input into a naive local datetime.
    - None and blank strings mean "no due date".
    - Strings are parsed as ISO8601 datetimes first, then as plain dates (set to 00:00).
    - A date (not datetime) is promoted to a datetime at 00:00.
    - An offset-aware datetime is converted to local time and the offset dropped.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _naive_local(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 0, 0, 0)

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        # fromisoformat only learned the trailing "Z" in 3.11
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return _naive_local(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, 0, 0, 0)
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


# PUBLIC_INTERFACE
class SubtaskInput(BaseModel):
    """
    Request body for creating or renaming a subtask, and for subtasks supplied
    inline when a task is created.

    Only the JSON types are checked here; required fields are checked by
    validation.validate_subtask_input.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"title": "Write Dockerfile"}},
    )

    title: Optional[StrictStr] = Field(default=None, description="Subtask title (required, non-blank)")
    done: StrictBool = Field(default=False, description="Completion flag, honored on create only")


# PUBLIC_INTERFACE
class TaskInput(BaseModel):
    """
    Request body for creating or updating a task.

    Types are strict (a numeric title is a parse error, not a validation
    error). Required/enumerated values are checked by
    validation.validate_task_input so the 400 message can name the field.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Setup CI/CD",
                "description": "Automate the deployment process",
                "priority": "Medium",
                "assignee": "Dana",
                "due_date": "2025-02-01",
                "subtasks": [{"title": "Setup GitHub Actions"}],
            }
        },
    )

    title: Optional[StrictStr] = Field(default=None, description="Short title for the task")
    description: Optional[StrictStr] = Field(default=None, description="Optional detailed description")
    priority: Optional[StrictStr] = Field(default=None, description="One of Low, Medium, High; Medium when omitted")
    assignee: Optional[StrictStr] = Field(default=None, description="Person responsible for the task")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the task. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )
    done: StrictBool = Field(default=False, description="Initial completion flag, honored on create only")
    subtasks: List[SubtaskInput] = Field(default_factory=list, description="Subtasks to create with the task")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize due_date from str/date/datetime to datetime.
        """
        return _parse_due_date(v)

    def resolved_priority(self) -> Priority:
        """Return the priority to store. Call only after validation passed."""
        if self.priority is None:
            return Priority.MEDIUM
        return Priority(self.priority)


# PUBLIC_INTERFACE
class DoneInput(BaseModel):
    """Request body for the toggle-completion endpoints."""

    model_config = ConfigDict(extra="ignore", json_schema_extra={"example": {"done": True}})

    done: StrictBool = Field(default=False, description="New completion flag")


# PUBLIC_INTERFACE
class SubtaskOut(BaseModel):
    """
    Schema returned by the API for a Subtask.
    """

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 7,
                "task_id": 3,
                "title": "Write Dockerfile",
                "done": True,
                "created_at": "2025-01-25T10:15:30",
                "updated_at": "2025-01-26T09:00:00",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the subtask")
    task_id: int = Field(..., description="Identifier of the owning task")
    title: str = Field(..., description="Subtask title")
    done: bool = Field(..., description="Completion flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a Task, including its subtasks.
    """

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 3,
                "title": "Setup CI/CD",
                "description": "Automate the deployment process",
                "priority": "Medium",
                "assignee": "Dana",
                "due_date": "2025-02-01T00:00:00",
                "done": False,
                "created_at": "2025-01-25T10:15:30",
                "updated_at": "2025-01-26T09:00:00",
                "subtasks": [],
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Priority = Field(..., description="Task priority")
    assignee: Optional[str] = Field(default=None, description="Person responsible for the task")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    done: bool = Field(..., description="Completion flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    subtasks: List[SubtaskOut] = Field(default_factory=list, description="Subtasks owned by this task")
