from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .models import Priority
from .schemas import SubtaskInput, TaskInput


@dataclass(frozen=True)
class FieldError:
    """A single failed check: the offending field and why it failed."""

    field: str
    reason: str


def _check_title(title: Optional[str], field: str = "title") -> List[FieldError]:
    if title is None or not title.strip():
        return [FieldError(field, "is required")]
    return []


# PUBLIC_INTERFACE
def validate_task_input(payload: TaskInput, check_subtasks: bool = True) -> List[FieldError]:
    """
    Check a parsed task body before it is persisted.

    - title must be present and not blank
    - priority, when present, must be exactly Low, Medium or High
    - every inline subtask must have a title (skipped when check_subtasks is
      False, e.g. on update where subtasks are not stored)

    Returns:
        The failed checks, empty when the payload is valid.
    """
    errors = _check_title(payload.title)
    if payload.priority is not None and payload.priority not in Priority.values():
        errors.append(FieldError("priority", f"must be one of {', '.join(Priority.values())}"))
    if not check_subtasks:
        return errors
    for i, subtask in enumerate(payload.subtasks):
        errors.extend(_check_title(subtask.title, f"subtasks[{i}].title"))
    return errors


# PUBLIC_INTERFACE
def validate_subtask_input(payload: SubtaskInput) -> List[FieldError]:
    """Check a parsed subtask body; title must be present and not blank."""
    return _check_title(payload.title)


# PUBLIC_INTERFACE
def format_field_errors(errors: Iterable[FieldError]) -> str:
    """Render failed checks as the 400 message, e.g. 'title: is required'."""
    return "; ".join(f"{e.field}: {e.reason}" for e in errors)
