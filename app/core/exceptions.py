"""
Application error taxonomy.

Services raise these; a single exception handler in app.main renders them as
``{"error": "<message>"}`` with the matching HTTP status.
"""

from fastapi import status


class AppError(Exception):
    """Base for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(AppError):
    """Missing, invalid or expired token, or the token subject no longer exists."""

    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(AppError):
    """Authenticated but not allowed (wrong role, not the owner, blocked)."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    """Unique constraint violation, e.g. an email that is already registered."""

    status_code = status.HTTP_409_CONFLICT


class UpstreamFailure(AppError):
    """Object store or mail provider failed while the request depended on it."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
