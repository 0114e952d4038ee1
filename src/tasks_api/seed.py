"""
Populate the database with sample tasks for local development.

Usage:
    python -m tasks_api.seed
    tasks-api-seed

Each sample task carries three subtasks. Inserts go through TaskRepository;
a task that fails to insert is logged and skipped.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from .db import Database, init_db
from .errors import PersistenceError
from .logging_setup import configure_logging
from .repositories import TaskRepository
from .schemas import SubtaskInput, TaskInput
from .settings import get_settings, load_env_file

logger = logging.getLogger(__name__)

# title, description, priority, assignee, due in days, done, [(subtask title, done)]
_SAMPLES: List[Tuple[str, str, str, str, int, bool, List[Tuple[str, bool]]]] = [
    (
        "Setup Development Environment", "Install required tools and dependencies", "High", "Alice", 3, False,
        [("Install Python", False), ("Setup FastAPI project", False), ("Create DB schema", False)],
    ),
    (
        "Design Landing Page", "Create the frontend design layout", "Medium", "Bob", 5, False,
        [("Header layout", True), ("Hero section", False), ("Footer section", False)],
    ),
    (
        "Implement Authentication", "Add login and signup features", "High", "Charlie", 7, False,
        [("Signup endpoint", True), ("Login endpoint", False), ("JWT middleware", False)],
    ),
    (
        "Setup CI/CD", "Automate the deployment process", "Medium", "Dana", 10, False,
        [("Setup GitHub Actions", False), ("Write Dockerfile", True), ("Create deployment script", False)],
    ),
    (
        "Database Optimization", "Index important fields for faster querying", "High", "Eve", 2, False,
        [("Add index on task title", False), ("Analyze slow queries", False), ("Normalize schema", True)],
    ),
    (
        "User Profile Page", "Build user profile section with editable fields", "Low", "Frank", 9, False,
        [("Display user data", True), ("Edit profile form", False), ("Upload profile picture", False)],
    ),
    (
        "Create API Documentation", "Write Swagger/OpenAPI docs for endpoints", "Medium", "Grace", 6, False,
        [("Add comments to routes", True), ("Generate Swagger file", False), ("Host docs on /docs", False)],
    ),
    (
        "Unit Testing", "Add tests for service logic and handlers", "High", "Hannah", 4, False,
        [("Write task handler tests", False), ("Write subtask model tests", False), ("Test middleware functions", False)],
    ),
    (
        "Fix Bug in Task Deletion", "Tasks not deleting related subtasks", "High", "Ivan", 1, True,
        [("Reproduce bug", True), ("Fix cascade delete", True), ("Write regression test", True)],
    ),
    (
        "Add Filtering & Sorting", "Enable users to filter/sort tasks by status and due date", "Medium", "Jasmine", 8, False,
        [("Add filter by priority", False), ("Sort by due date", False), ("Toggle show completed", False)],
    ),
]


# PUBLIC_INTERFACE
def sample_tasks(now: Optional[datetime] = None) -> List[TaskInput]:
    """Return the sample tasks, with due dates counted from now."""
    base = now or datetime.now()
    return [
        TaskInput(
            title=title,
            description=description,
            priority=priority,
            assignee=assignee,
            due_date=base + timedelta(days=days),
            done=done,
            subtasks=[SubtaskInput(title=st, done=st_done) for st, st_done in subtasks],
        )
        for title, description, priority, assignee, days, done, subtasks in _SAMPLES
    ]


# PUBLIC_INTERFACE
def seed_database(database: Database, now: Optional[datetime] = None) -> int:
    """
    Insert every sample task. Failures are logged per task and do not stop
    the run.

    Returns:
        Number of tasks inserted.
    """
    database.create_schema()
    repo = TaskRepository(database)
    inserted = 0
    for task in sample_tasks(now):
        try:
            repo.create(task)
        except PersistenceError as exc:
            logger.error("Error inserting %r: %s", task.title, exc)
            continue
        inserted += 1
        logger.info("Inserted task: %s", task.title)
    return inserted


def main() -> None:
    configure_logging()
    load_env_file()
    settings = get_settings()
    configure_logging(settings.log_level)
    database = init_db(settings)
    try:
        count = seed_database(database)
    finally:
        database.dispose()
    logger.info("Seeded %d task(s)", count)


if __name__ == "__main__":
    main()
