from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from .db import Database, init_db
from .errors import ApiError
from .logging_setup import configure_logging
from .routers import subtasks as subtasks_router
from .routers import tasks as tasks_router
from .settings import Settings, get_settings, load_env_file
from .utils import CANNOT_PARSE_JSON, request_body_schemas

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "tasks", "description": "CRUD operations for tasks, including completion toggling."},
    {"name": "subtasks", "description": "CRUD operations for the subtasks owned by a task."},
]

ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]
ALLOWED_HEADERS = ["Content-Type"]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# PUBLIC_INTERFACE
def create_app(database: Optional[Database] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database: persistence adapter to serve from. When omitted, the app
            opens the configured database at startup (init_db) and disposes it
            at shutdown; a failed connection aborts startup.
        settings: application settings. When omitted, a .env file is loaded
            (without overriding the environment) and settings are read from
            the environment.
    """
    if settings is None:
        load_env_file()
        settings = get_settings()
    app_settings = settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = app.state.database is None
        if owned:
            app.state.database = init_db(app_settings)
        try:
            yield
        finally:
            if owned:
                app.state.database.dispose()
                app.state.database = None

    app = FastAPI(
        title="Tasks Backend",
        description="Backend API service for managing tasks and their subtasks.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.settings = app_settings

    # Only the configured frontend origin(s) may call the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        """
        Render handler errors as {"error": "<message>"}.
        """
        if exc.status_code >= 500:
            logger.error("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """
        Unknown routes and unsupported methods use the same error body.
        """
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Request bodies are parsed by the handlers themselves, so anything the
        framework rejects on its own is reported as an unparseable request.
        """
        logger.debug("Request validation failed: %s", exc.errors())
        return _error(status.HTTP_400_BAD_REQUEST, CANNOT_PARSE_JSON)

    @app.get("/", summary="Health Check", tags=["health"], response_class=PlainTextResponse)
    def health_check() -> str:
        """
        Liveness check endpoint.

        Returns:
            A plain-text message confirming the server is running.
        """
        return "Server is up and running!"

    app.include_router(tasks_router.router)
    app.include_router(subtasks_router.router)

    def custom_openapi() -> Dict[str, Any]:
        # Bodies are read raw by the handlers; publish their models as components
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
            tags=app.openapi_tags,
        )
        schema.setdefault("components", {}).setdefault("schemas", {}).update(request_body_schemas())
        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi
    return app


app = create_app()


# PUBLIC_INTERFACE
def run() -> None:
    """
    Console entry point: load .env, configure logging and serve the app with
    uvicorn on HOST:PORT.
    """
    configure_logging()
    load_env_file()
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting server on %s:%d", settings.host, settings.port)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
