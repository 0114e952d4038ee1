from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ..errors import ApiError, NotFoundError, PersistenceError
from ..repositories import SubtaskRepository, get_subtask_repository
from ..schemas import DoneInput, SubtaskInput, SubtaskOut
from ..utils import json_request_body, parse_id, parse_payload, read_body
from ..validation import format_field_errors, validate_subtask_input

router = APIRouter(tags=["subtasks"])

INVALID_TASK_ID = "Invalid task ID"
INVALID_SUBTASK_ID = "Invalid subtask ID"
SUBTASK_NOT_FOUND = "Subtask not found"


def _fetch_existing(repo: SubtaskRepository, subtask_id: int) -> SubtaskOut:
    try:
        return repo.get(subtask_id)
    except NotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, SUBTASK_NOT_FOUND) from exc
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not retrieve subtask") from exc


def _validated_subtask_input(raw_body: bytes) -> SubtaskInput:
    payload = parse_payload(SubtaskInput, raw_body)
    errors = validate_subtask_input(payload)
    if errors:
        raise ApiError(status.HTTP_400_BAD_REQUEST, format_field_errors(errors))
    return payload


# PUBLIC_INTERFACE
@router.post(
    "/tasks/{task_id}/subtasks",
    response_model=SubtaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Subtask",
    description="Create a subtask under the given task ID. The task itself is not looked up.",
    responses={
        201: {"description": "Subtask created"},
        400: {"description": "Invalid task ID, unparseable body or validation error"},
        500: {"description": "Database error"},
    },
    openapi_extra=json_request_body(SubtaskInput),
)
def create_subtask(
    task_id: str,
    raw_body: bytes = Depends(read_body),
    repo: SubtaskRepository = Depends(get_subtask_repository),
) -> SubtaskOut:
    tid = parse_id(task_id, INVALID_TASK_ID)
    payload = _validated_subtask_input(raw_body)
    try:
        return repo.create(tid, payload)
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not create subtask") from exc


# PUBLIC_INTERFACE
@router.get(
    "/tasks/{task_id}/subtasks",
    response_model=List[SubtaskOut],
    summary="List Subtasks",
    description="List the subtasks of a task. An unknown task yields an empty list.",
    responses={
        200: {"description": "Subtasks retrieved"},
        400: {"description": "Invalid task ID"},
        500: {"description": "Database error"},
    },
)
def list_subtasks(task_id: str, repo: SubtaskRepository = Depends(get_subtask_repository)) -> List[SubtaskOut]:
    tid = parse_id(task_id, INVALID_TASK_ID)
    try:
        return repo.list_for_task(tid)
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not retrieve subtasks") from exc


# PUBLIC_INTERFACE
@router.put(
    "/subtasks/{subtask_id}",
    response_model=SubtaskOut,
    summary="Update Subtask",
    description="Rename a subtask. Only the title is changed.",
    responses={
        200: {"description": "Subtask updated"},
        400: {"description": "Invalid subtask ID, unparseable body or validation error"},
        404: {"description": "Subtask not found"},
        500: {"description": "Database error"},
    },
    openapi_extra=json_request_body(SubtaskInput),
)
def update_subtask(
    subtask_id: str,
    raw_body: bytes = Depends(read_body),
    repo: SubtaskRepository = Depends(get_subtask_repository),
) -> SubtaskOut:
    sid = parse_id(subtask_id, INVALID_SUBTASK_ID)
    _fetch_existing(repo, sid)
    payload = _validated_subtask_input(raw_body)
    try:
        return repo.update_title(sid, payload.title)
    except NotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, SUBTASK_NOT_FOUND) from exc
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not update subtask") from exc


# PUBLIC_INTERFACE
@router.delete(
    "/subtasks/{subtask_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Subtask",
    description="Delete a subtask by ID. Deleting an ID that matches nothing is reported as a 500.",
    responses={
        204: {"description": "Subtask deleted"},
        400: {"description": "Invalid subtask ID"},
        500: {"description": "Database error or no matching subtask"},
    },
)
def delete_subtask(subtask_id: str, repo: SubtaskRepository = Depends(get_subtask_repository)) -> None:
    sid = parse_id(subtask_id, INVALID_SUBTASK_ID)
    try:
        repo.delete(sid)
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not delete subtask") from exc
    return None


# PUBLIC_INTERFACE
@router.patch(
    "/subtasks/{subtask_id}/done",
    response_model=SubtaskOut,
    summary="Set Subtask Completion",
    description='Set the completion flag of a subtask from a {"done": bool} body.',
    responses={
        200: {"description": "Subtask updated"},
        400: {"description": "Invalid subtask ID or unparseable body"},
        404: {"description": "Subtask not found"},
        500: {"description": "Database error"},
    },
    openapi_extra=json_request_body(DoneInput),
)
def set_subtask_done(
    subtask_id: str,
    raw_body: bytes = Depends(read_body),
    repo: SubtaskRepository = Depends(get_subtask_repository),
) -> SubtaskOut:
    sid = parse_id(subtask_id, INVALID_SUBTASK_ID)
    payload = parse_payload(DoneInput, raw_body)
    _fetch_existing(repo, sid)
    try:
        return repo.set_done(sid, payload.done)
    except NotFoundError as exc:
        raise ApiError(status.HTTP_404_NOT_FOUND, SUBTASK_NOT_FOUND) from exc
    except PersistenceError as exc:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not update subtask") from exc
