"""
Identity Service Factory

Environment Switching:
    - ENV_MODE=development → MockIdentityService (token is the subject)
    - ENV_MODE=staging/production → Auth0IdentityService (RS256 + JWKS)
"""

import logging

from fastapi import Request

from app.core.config import Settings
from app.services.identity.base import BaseIdentityService
from app.services.identity.mock import MockIdentityService
from app.services.identity.auth0 import Auth0IdentityService

logger = logging.getLogger(__name__)


def build_identity_service(settings: Settings) -> BaseIdentityService:
    """
    Build the configured identity service instance.

    Raises:
        ValueError: If real services are requested but Auth0 settings are missing
    """
    if settings.is_development:
        logger.info("Identity Service: Using MockIdentityService (development mode)")
        return MockIdentityService()

    logger.info(
        f"Identity Service: Using Auth0IdentityService "
        f"({settings.env_mode.value} mode)"
    )
    return Auth0IdentityService(settings)


def get_identity_service(request: Request) -> BaseIdentityService:
    """FastAPI dependency returning the process-wide identity service."""
    return request.app.state.identity_service


__all__ = [
    "build_identity_service",
    "get_identity_service",
    "BaseIdentityService",
    "MockIdentityService",
    "Auth0IdentityService",
]
