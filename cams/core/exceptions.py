"""Domain exceptions shared by services and HTTP handlers."""
from __future__ import annotations
from typing import Optional


class CamsError(Exception):
    """Base exception for all service-layer failures.

    Attributes:
        status: HTTP status code the API layer maps this error to
        title: Short error label used in JSON responses
        detail: Human-readable message (safe to show to API clients)
    """

    status = 500
    title = "Internal Server Error"

    def __init__(self, detail: str, *, identifier: Optional[str] = None):
        self.detail = detail
        self.identifier = identifier
        super().__init__(detail)

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        """Convert to the JSON error body used by the API."""
        return {"error": self.title, "message": self.detail}


class ValidationError(CamsError):
    """Malformed input or missing required field."""
    status = 400
    title = "Bad Request"


class ConflictError(CamsError):
    """Unique key collision with an existing row or an earlier batch record."""
    status = 400
    title = "Conflict"


class NotFoundError(CamsError):
    """Referenced entity does not exist."""
    status = 404
    title = "Not Found"


class AuthenticationError(CamsError):
    """Missing, malformed, or expired bearer token."""
    status = 401
    title = "Unauthorized"


class AuthorizationError(CamsError):
    """Caller lacks the required role."""
    status = 403
    title = "Forbidden"


class PersistenceError(CamsError):
    """Store rejected a single write (constraint violation, data error)."""
    status = 500
    title = "Internal Server Error"


class InfrastructureError(CamsError):
    """Store or network unavailable; aborts any remaining batch work."""
    status = 500
    title = "Internal Server Error"
