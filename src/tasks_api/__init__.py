"""
FastAPI Tasks Backend package.

Exposes the application factory and a default app instance so the service
can be imported as tasks_api.app or built with tasks_api.create_app().
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
