"""
core/errors.py -- Application error taxonomy.

Every layer raises one of these; api/main.py owns the single boundary handler
that maps an AppError onto its HTTP status and the JSON error envelope:

    {"success": false, "message": "...", "errors": ["..."]}

Handlers and stores never build error responses themselves.
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base class for errors with a client-facing message and status code."""

    status_code: int = 500
    default_message: str = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, errors: Optional[list[str]] = None) -> None:
        self.message = message or self.default_message
        self.errors = list(errors) if errors else None
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body: dict = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AppError):
    """Missing, invalid, or expired credentials."""

    status_code = 401
    default_message = "Authentication required"


class InvalidTokenError(AuthenticationError):
    """Token signature mismatch, malformed token, or unusable subject."""

    default_message = "Invalid token"


class TokenExpiredError(AuthenticationError):
    """Token signature is valid but its expiry has passed."""

    default_message = "Token expired"


class AuthorizationError(AppError):
    """Authenticated identity lacks rights over the resource."""

    status_code = 403
    default_message = "Not authorized to modify this resource"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class RateLimitError(AppError):
    """Client exceeded a rate limit policy. retry_after is in seconds."""

    status_code = 429
    default_message = "Too many requests, please try again later."

    def __init__(self, retry_after: int, message: Optional[str] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryAfter"] = self.retry_after
        return body


class InternalError(AppError):
    """Unexpected failure. detail is only exposed in debug mode."""

    status_code = 500

    def __init__(self, detail: Optional[str] = None, expose_detail: bool = False) -> None:
        super().__init__()
        self.detail = detail
        self.expose_detail = expose_detail

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.expose_detail and self.detail:
            body["error"] = self.detail
        return body
