"""
Core module initialization.
Exports configuration, logging utilities and domain exceptions.
"""

from app.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from app.core.exceptions import (
    AppError,
    NotFoundError,
    ConflictError,
    UnauthorizedError,
    ValidationError,
    UpstreamFailure,
    WebhookVerificationError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "AppError",
    "NotFoundError",
    "ConflictError",
    "UnauthorizedError",
    "ValidationError",
    "UpstreamFailure",
    "WebhookVerificationError",
]
