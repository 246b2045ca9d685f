"""
Error taxonomy shared by the domain services and the HTTP layer.

Every error carries the HTTP status it maps to, a short category string and a
human readable message. The API renders them as ``{"error": ..., "message": ...}``.
"""

from typing import Optional


class TrackerError(Exception):
    """Base class for all expected failures."""

    status_code = 500
    error = "server_error"
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class ValidationError(TrackerError):
    """Malformed or missing input."""
    status_code = 400
    error = "validation_error"
    default_message = "Invalid input"


class AuthRequiredError(TrackerError):
    """No bearer token was presented."""
    status_code = 401
    error = "auth_required"
    default_message = "Access token not found"


class InvalidTokenError(TrackerError):
    status_code = 401
    error = "invalid_token"
    default_message = "Invalid token, please try again with a valid token"


class TokenExpiredError(TrackerError):
    status_code = 401
    error = "token_expired"
    default_message = "Token has expired, please log in again"


class AuthError(TrackerError):
    """Login failure; never says whether the email or the password was wrong."""
    status_code = 401
    error = "auth_error"
    default_message = "Email or password is incorrect"


class ConflictError(TrackerError):
    status_code = 409
    error = "conflict"
    default_message = "Resource already exists"


class NotFoundError(TrackerError):
    """Absent record, or a record owned by someone else."""
    status_code = 404
    error = "not_found"
    default_message = "Resource not found"


class ServerError(TrackerError):
    status_code = 500
    error = "server_error"
    default_message = "An internal server error occurred"
