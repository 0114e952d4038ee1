from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from tasks_api.db import Database
from tasks_api.main import create_app
from tasks_api.settings import Settings

FRONTEND_ORIGIN = "http://localhost:5173"


def make_settings(**overrides) -> Settings:
    values = dict(
        port=3000,
        host="127.0.0.1",
        db_user="",
        db_password="",
        db_host="localhost",
        db_port=3306,
        db_name="",
        database_url="sqlite://",
        cors_allow_origins=[FRONTEND_ORIGIN],
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def database() -> Iterator[Database]:
    # Fresh in-memory database per test
    db = Database("sqlite://")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture()
def app(database: Database, settings: Settings):
    return create_app(database=database, settings=settings)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)
