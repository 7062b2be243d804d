"""
Error taxonomy for the SMS dashboard API.

Every error carries the HTTP status and the envelope message it renders as.
A single exception handler in app.main turns them into
{"success": false, "message": ..., "data": ...} responses.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map onto an API response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, data: Any = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class ValidationError(AppError):
    """Bad or missing input, user-correctable."""
    status_code = 400
    default_message = "Missing required fields"


class AuthenticationError(AppError):
    """Sign-in credentials did not match a user."""
    status_code = 401
    default_message = "Invalid email or password"


class UnauthorizedError(AppError):
    """No session, or the session identity does not own the target resource."""
    status_code = 403
    default_message = "Unauthorized"


class NotFoundError(AppError):
    status_code = 404
    default_message = "User not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "User already exists"


class DeliveryError(AppError):
    """The SMS provider rejected the message or could not be reached."""
    status_code = 500
    default_message = "Failed to send SMS"


class StorageError(AppError):
    status_code = 500
    default_message = "Internal server error"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"


def describe_exception(exc: BaseException) -> dict:
    """Serializable summary of an exception for the response `data` field."""
    return {"type": type(exc).__name__, "detail": str(exc)}
