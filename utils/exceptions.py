"""
Application error taxonomy.

Every error carries the HTTP status, the machine-readable code used in the
error envelope and a message that is safe to show to the client. Internal
detail (store errors, missing configuration) goes to the log, never to the
client: 5xx errors always answer with the generic message.
"""
from __future__ import annotations


class AppError(Exception):
    status = 500
    code = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.detail = message or self.message
        self.details = details
        super().__init__(self.detail)

    @property
    def public_message(self) -> str:
        if self.status >= 500:
            return AppError.message
        return self.detail


class ValidationError(AppError):
    status = 422
    code = "VALIDATION_ERROR"
    message = "Invalid input"


class InvalidCredentials(AppError):
    status = 401
    code = "INVALID_CREDENTIALS"
    message = "invalid credentials"


class Unauthorized(AppError):
    status = 401
    code = "UNAUTHORIZED"
    message = "unauthorized"


class VerificationError(Unauthorized):
    """Access token rejected. The message never says why."""

    message = "invalid token"

    def __init__(self, message: str | None = None, details: dict | None = None):
        # the cause is for the log only
        super().__init__(None, details)
        self.cause = message


class ConfigError(AppError):
    code = "INTERNAL_ERROR"


class ConflictError(AppError):
    status = 409
    code = "CONFLICT"
    message = "Conflict"


class NotFoundError(AppError):
    status = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class InternalError(AppError):
    pass
