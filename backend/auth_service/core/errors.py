"""
Application error taxonomy.

Routes and dependencies raise these; the handlers registered in main.py turn
them into the standard error body: {"error": CODE, "message": str, "details"?}.
"""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    status_code: int = 500
    error: str = "INTERNAL_ERROR"
    default_message: str = "Request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details
        self.headers = headers
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error = "VALIDATION_ERROR"
    default_message = "Invalid request payload"


class AuthError(AppError):
    status_code = 401
    error = "UNAUTHORIZED"
    default_message = "Unauthorized"

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class ConflictError(AppError):
    status_code = 409
    error = "CONFLICT"
    default_message = "Conflict"


class RateLimitError(AppError):
    status_code = 429
    error = "RATE_LIMITED"
    default_message = "Too many attempts, please try again later."


class InternalError(AppError):
    status_code = 500
    error = "INTERNAL_ERROR"
    default_message = "Internal server error"
