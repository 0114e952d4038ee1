from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import DatabaseUnavailableError
from .models import Base
from .settings import Settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def build_database_url(settings: Settings) -> str:
    """
    Return the SQLAlchemy URL for the configured database.

    DATABASE_URL wins when set; otherwise a MySQL (PyMySQL driver) URL is
    assembled from DB_USER, DB_PASSWORD, DB_HOST, DB_PORT and DB_NAME.
    """
    if settings.database_url:
        return settings.database_url
    url = URL.create(
        "mysql+pymysql",
        username=settings.db_user or None,
        password=settings.db_password or None,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name or None,
        query={"charset": "utf8mb4"},
    )
    return url.render_as_string(hide_password=False)


class Database:
    """
    Persistence adapter owning one engine and its session factory.

    Instances are created explicitly and handed to the app factory, so tests
    can run against their own in-memory database.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self._url = make_url(url)
        kwargs: dict = {"echo": echo}
        if self._url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if self._url.database in (None, "", ":memory:"):
                # One shared connection, otherwise every session sees an empty database
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
        self.engine: Engine = create_engine(self._url, **kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @property
    def safe_url(self) -> str:
        """Database URL with the password masked, for logs."""
        return self._url.render_as_string(hide_password=True)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Yield a session; commit on success, roll back on error, always close."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create the tasks and subtasks tables if they do not exist yet."""
        Base.metadata.create_all(self.engine)

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()


# PUBLIC_INTERFACE
def init_db(settings: Settings, url: Optional[str] = None) -> Database:
    """
    Open the configured database and make sure both tables exist.

    Raises:
        DatabaseUnavailableError if the connection cannot be established or
        the schema cannot be created. Callers treat this as fatal.
    """
    database = Database(url or build_database_url(settings))
    logger.info("Connecting to database %s", database.safe_url)
    try:
        database.ping()
        database.create_schema()
    except SQLAlchemyError as exc:
        logger.error("Failed to connect to database %s: %s", database.safe_url, exc)
        database.dispose()
        raise DatabaseUnavailableError("failed to connect to database") from exc
    logger.info("Database ready")
    return database
