"""
Domain Exceptions

Every service raises one of these instead of building HTTP responses itself.
The FastAPI application maps them to status codes in one place
(see ``register_exception_handlers`` in app.main).

    NotFoundError      -> 404
    ConflictError      -> 409
    UnauthorizedError  -> 401 (no body detail)
    ValidationError    -> 400
    UpstreamFailure    -> 500
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class UnauthorizedError(AppError):
    """
    Missing/invalid token, unknown local account, or ownership mismatch.

    The message is logged but never returned to the client.
    """
    status_code = 401
    default_message = "Unauthorized"


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


class UpstreamFailure(AppError):
    """Image storage or payment provider failed."""
    status_code = 500
    default_message = "Upstream service error"


class WebhookVerificationError(AppError):
    """Inbound webhook could not be authenticated or parsed."""
    status_code = 400
    default_message = "Webhook verification failed"
