from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ..errors import ApiError, NotFoundError, PersistenceError
from ..repositories import TaskRepository, get_task_repository
from ..schemas import DoneInput, TaskInput, TaskOut
from ..utils import json_request_body, parse_id, parse_payload, read_body
from ..validation import format_field_errors, validate_task_input

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)

INVALID_TASK_ID = "Invalid task ID"
TASK_NOT_FOUND = "Task not found"

_ERROR_RESPONSES = {
    400: {"description": "Invalid ID, unparseable body or validation error"},
    404: {"description": "Task not found"},
    500: {"description": "Database error"},
}


def _fetch_existing(repo: TaskRepository, task_id: int, failure_message: str) -> TaskOut:
    """Load a task or raise the 404/500 ApiError for the calling endpoint."""
    try:
        return repo.get(task_id)
    except NotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, TASK_NOT_FOUND) from exc
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, failure_message) from exc


def _validated_task_input(raw_body: bytes, check_subtasks: bool = True) -> TaskInput:
    payload = parse_payload(TaskInput, raw_body)
    errors = validate_task_input(payload, check_subtasks=check_subtasks)
    if errors:
        raise ApiError(status.HTTP_400_BAD_REQUEST, format_field_errors(errors))
    return payload


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task, optionally with inline subtasks, and return it with its server-assigned fields.",
    responses={201: {"description": "Task created"}, 400: _ERROR_RESPONSES[400], 500: _ERROR_RESPONSES[500]},
    openapi_extra=json_request_body(TaskInput),
)
def create_task(
    raw_body: bytes = Depends(read_body),
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    """
    Create a new Task.
    """
    payload = _validated_task_input(raw_body)
    try:
        return repo.create(payload)
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not create task") from exc


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="List every task with its subtasks, in creation order.",
    responses={200: {"description": "Tasks retrieved"}, 500: _ERROR_RESPONSES[500]},
)
def list_tasks(repo: TaskRepository = Depends(get_task_repository)) -> List[TaskOut]:
    try:
        return repo.list()
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not retrieve tasks") from exc


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task, with its subtasks, by ID.",
    responses={200: {"description": "Task found"}, **_ERROR_RESPONSES},
)
def get_task(task_id: str, repo: TaskRepository = Depends(get_task_repository)) -> TaskOut:
    """
    Retrieve a single Task by its ID.
    """
    tid = parse_id(task_id, INVALID_TASK_ID)
    return _fetch_existing(repo, tid, "Could not retrieve task")


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description=(
        "Overwrite the title, description, priority, assignee and due date of a task. "
        "The completion flag is only changed through PATCH /tasks/{task_id}/done."
    ),
    responses={200: {"description": "Task updated"}, **_ERROR_RESPONSES},
    openapi_extra=json_request_body(TaskInput),
)
def update_task(
    task_id: str,
    raw_body: bytes = Depends(read_body),
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    """
    The task must exist before the body is looked at: an unknown id is a 404
    even when the body is malformed.
    """
    tid = parse_id(task_id, INVALID_TASK_ID)
    _fetch_existing(repo, tid, "Could not retrieve task")
    # PUT never touches subtasks, so inline ones are not checked
    payload = _validated_task_input(raw_body, check_subtasks=False)
    try:
        return repo.update(tid, payload)
    except NotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, TASK_NOT_FOUND) from exc
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not update task") from exc


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a task by ID. Its subtasks are not removed.",
    responses={204: {"description": "Task deleted"}, **_ERROR_RESPONSES},
)
def delete_task(task_id: str, repo: TaskRepository = Depends(get_task_repository)) -> None:
    """
    Delete a Task. Returns 204 on success, 404 if not found.
    """
    tid = parse_id(task_id, INVALID_TASK_ID)
    _fetch_existing(repo, tid, "Could not delete task")
    try:
        deleted = repo.delete(tid)
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not delete task") from exc
    if not deleted:
        # removed by someone else since the lookup
        raise ApiError(status.HTTP_404_NOT_FOUND, TASK_NOT_FOUND)
    return None


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/done",
    response_model=TaskOut,
    summary="Set Task Completion",
    description='Set the completion flag of a task from a {"done": bool} body.',
    responses={200: {"description": "Task updated"}, **_ERROR_RESPONSES},
    openapi_extra=json_request_body(DoneInput),
)
def set_task_done(
    task_id: str,
    raw_body: bytes = Depends(read_body),
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    tid = parse_id(task_id, INVALID_TASK_ID)
    payload = parse_payload(DoneInput, raw_body)
    _fetch_existing(repo, tid, "Could not retrieve task")
    try:
        return repo.set_done(tid, payload.done)
    except NotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, TASK_NOT_FOUND) from exc
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not update task") from exc
