from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List

from fastapi import Depends, Request
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .db import Database
from .errors import NotFoundError, PersistenceError
from .models import Subtask, Task
from .schemas import SubtaskInput, SubtaskOut, TaskInput, TaskOut

logger = logging.getLogger(__name__)


@contextmanager
def _persistence_guard(action: str) -> Iterator[None]:
    """Turn any SQLAlchemy failure inside the block into a PersistenceError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Database error: could not %s", action)
        raise PersistenceError(f"could not {action}") from exc


# PUBLIC_INTERFACE
class TaskRepository:
    """
    Task storage on top of the relational database.

    Reads eagerly load each task's subtasks. Every method runs in its own
    session; there is no locking across calls, so concurrent writers to the
    same row are last-write-wins.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    @staticmethod
    def _load(session: Session, task_id: int) -> Task:
        stmt = select(Task).options(selectinload(Task.subtasks)).where(Task.id == task_id)
        task = session.scalars(stmt).first()
        if task is None:
            raise NotFoundError(f"task {task_id} not found")
        return task

    def create(self, data: TaskInput) -> TaskOut:
        """Insert a task together with any subtasks supplied inline."""
        with _persistence_guard("create task"), self._db.session() as session:
            task = Task(
                title=data.title,
                description=data.description,
                priority=data.resolved_priority(),
                assignee=data.assignee,
                due_date=data.due_date,
                done=data.done,
                subtasks=[Subtask(title=s.title, done=s.done) for s in data.subtasks],
            )
            session.add(task)
            session.flush()
            logger.info("Created task %d with %d subtask(s)", task.id, len(task.subtasks))
            return TaskOut.model_validate(task)

    def list(self) -> List[TaskOut]:
        """Return every task with its subtasks, in insertion order."""
        with _persistence_guard("list tasks"), self._db.session() as session:
            stmt = select(Task).options(selectinload(Task.subtasks)).order_by(Task.id)
            return [TaskOut.model_validate(t) for t in session.scalars(stmt)]

    def get(self, task_id: int) -> TaskOut:
        """Return one task with its subtasks. Raises NotFoundError."""
        with _persistence_guard("get task"), self._db.session() as session:
            return TaskOut.model_validate(self._load(session, task_id))

    def update(self, task_id: int, data: TaskInput) -> TaskOut:
        """
        Overwrite title, description, priority, assignee and due date.
        The completion flag, subtasks and creation time are left alone.
        """
        with _persistence_guard("update task"), self._db.session() as session:
            task = self._load(session, task_id)
            task.title = data.title
            task.description = data.description
            task.priority = data.resolved_priority()
            task.assignee = data.assignee
            task.due_date = data.due_date
            task.updated_at = datetime.now()
            session.flush()
            return TaskOut.model_validate(task)

    def set_done(self, task_id: int, done: bool) -> TaskOut:
        """Overwrite only the completion flag."""
        with _persistence_guard("update task"), self._db.session() as session:
            task = self._load(session, task_id)
            task.done = done
            task.updated_at = datetime.now()
            session.flush()
            return TaskOut.model_validate(task)

    def delete(self, task_id: int) -> bool:
        """
        Delete the task row. Subtasks pointing at it are not removed.
        Returns False if no row matched.
        """
        with _persistence_guard("delete task"), self._db.session() as session:
            result = session.execute(delete(Task).where(Task.id == task_id))
            deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted task %d", task_id)
        return deleted


# PUBLIC_INTERFACE
class SubtaskRepository:
    """Subtask storage; subtasks are addressed by their own id or by task_id."""

    def __init__(self, database: Database) -> None:
        self._db = database

    @staticmethod
    def _load(session: Session, subtask_id: int) -> Subtask:
        subtask = session.get(Subtask, subtask_id)
        if subtask is None:
            raise NotFoundError(f"subtask {subtask_id} not found")
        return subtask

    def create(self, task_id: int, data: SubtaskInput) -> SubtaskOut:
        """Insert a subtask under task_id. The parent task is not looked up."""
        with _persistence_guard("create subtask"), self._db.session() as session:
            subtask = Subtask(task_id=task_id, title=data.title, done=data.done)
            session.add(subtask)
            session.flush()
            logger.info("Created subtask %d for task %d", subtask.id, task_id)
            return SubtaskOut.model_validate(subtask)

    def list_for_task(self, task_id: int) -> List[SubtaskOut]:
        with _persistence_guard("list subtasks"), self._db.session() as session:
            stmt = select(Subtask).where(Subtask.task_id == task_id).order_by(Subtask.id)
            return [SubtaskOut.model_validate(s) for s in session.scalars(stmt)]

    def get(self, subtask_id: int) -> SubtaskOut:
        with _persistence_guard("get subtask"), self._db.session() as session:
            return SubtaskOut.model_validate(self._load(session, subtask_id))

    def update_title(self, subtask_id: int, title: str) -> SubtaskOut:
        with _persistence_guard("update subtask"), self._db.session() as session:
            subtask = self._load(session, subtask_id)
            subtask.title = title
            subtask.updated_at = datetime.now()
            session.flush()
            return SubtaskOut.model_validate(subtask)

    def set_done(self, subtask_id: int, done: bool) -> SubtaskOut:
        with _persistence_guard("update subtask"), self._db.session() as session:
            subtask = self._load(session, subtask_id)
            subtask.done = done
            subtask.updated_at = datetime.now()
            session.flush()
            return SubtaskOut.model_validate(subtask)

    def delete(self, subtask_id: int) -> None:
        """
        Delete a subtask by id without checking that it exists first.

        Raises:
            PersistenceError if the statement failed or matched no row.
        """
        with _persistence_guard("delete subtask"), self._db.session() as session:
            result = session.execute(delete(Subtask).where(Subtask.id == subtask_id))
            matched = result.rowcount
        if matched == 0:
            logger.warning("Delete of subtask %d matched no rows", subtask_id)
            raise PersistenceError(f"subtask {subtask_id} matched no rows")
        logger.info("Deleted subtask %d", subtask_id)


# PUBLIC_INTERFACE
def get_database(request: Request) -> Database:
    """Return the Database attached to the running application."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("database is not initialised; was the app started through its lifespan?")
    return database


# PUBLIC_INTERFACE
def get_task_repository(database: Database = Depends(get_database)) -> TaskRepository:
    """FastAPI dependency returning a TaskRepository for the app's database."""
    return TaskRepository(database)


# PUBLIC_INTERFACE
def get_subtask_repository(database: Database = Depends(get_database)) -> SubtaskRepository:
    """FastAPI dependency returning a SubtaskRepository for the app's database."""
    return SubtaskRepository(database)
