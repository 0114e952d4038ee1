from __future__ import annotations


# PUBLIC_INTERFACE
class ApiError(Exception):
    """
    Error raised by route handlers and rendered by the app as
    {"error": message} with the given HTTP status code.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class NotFoundError(LookupError):
    """Raised by repositories when the requested row does not exist."""


class PersistenceError(Exception):
    """Raised by repositories when the database operation failed."""


class DatabaseUnavailableError(RuntimeError):
    """Raised at startup when the database cannot be reached or prepared."""
