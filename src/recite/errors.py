"""Typed application errors mapped to HTTP statuses by the global error handler."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that become an enveloped JSON error response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Invalid data"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authentication required"

    def __init__(self, message: str | None = None, *, reason: str = "invalid") -> None:
        super().__init__(
            message,
            errors=[{"field": "authorization", "message": reason}],
            headers={"WWW-Authenticate": "Bearer"},
        )
        self.reason = reason


class Forbidden(AppError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many requests. Try again later."


class PayloadTooLarge(AppError):
    status_code = 413
    default_message = "Uploaded file is too large"
