from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_FRONTEND_ORIGIN = "http://localhost:5173"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PORT: port the HTTP server listens on (default 3000)
    - HOST: interface the HTTP server binds to (default 0.0.0.0)
    - DB_USER, DB_PASSWORD, DB_HOST, DB_PORT, DB_NAME: MySQL connection parts
    - DATABASE_URL: full SQLAlchemy URL; overrides the DB_* parts when set
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins
      (default 'http://localhost:5173')
    - LOG_LEVEL: root log level (default INFO)
    """

    port: int
    host: str
    db_user: str
    db_password: str
    db_host: str
    db_port: int
    db_name: str
    database_url: Optional[str]
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        logger.warning("Ignoring non-integer value %r, using %d", value, default)
        return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env as a comma-separated list. Falls back to the
    frontend dev origin when nothing usable is given.
    """
    origins = [o.strip() for o in origins_value.split(",") if o.strip()]
    return origins or [DEFAULT_FRONTEND_ORIGIN]


# PUBLIC_INTERFACE
def load_env_file(path: Optional[str] = None) -> bool:
    """
    Load a local .env file into the process environment.

    Existing environment variables win over values in the file. A missing
    file is not an error; it is only logged.

    Returns:
        True if a file was found and loaded, False otherwise.
    """
    env_path = path if path is not None else find_dotenv(usecwd=True)
    if not env_path or not os.path.isfile(env_path):
        logger.info("No .env file found")
        return False
    load_dotenv(env_path, override=False)
    logger.info("Loaded environment from %s", env_path)
    return True


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    database_url = os.getenv("DATABASE_URL")
    if database_url is not None and not database_url.strip():
        database_url = None

    return Settings(
        port=_parse_int(_get_env("PORT", "3000"), 3000),
        host=_get_env("HOST", "0.0.0.0").strip(),
        db_user=_get_env("DB_USER", ""),
        db_password=_get_env("DB_PASSWORD", ""),
        db_host=_get_env("DB_HOST", "localhost").strip(),
        db_port=_parse_int(_get_env("DB_PORT", "3306"), 3306),
        db_name=_get_env("DB_NAME", "").strip(),
        database_url=database_url.strip() if database_url else None,
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", DEFAULT_FRONTEND_ORIGIN)),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
