"""
Mock Identity Service Implementation

Used in development mode (ENV_MODE=development) so the API can be exercised
with curl or the test suite without an Auth0 tenant.

Behavior:
    - The bearer token itself is the subject: "Bearer auth0|alice"
      authenticates as subject "auth0|alice"
    - Tokens listed in ``revoked`` are rejected
"""

import logging
from typing import Iterable, Optional

from app.core.exceptions import UnauthorizedError
from app.services.identity.base import BaseIdentityService

logger = logging.getLogger(__name__)


class MockIdentityService(BaseIdentityService):

    def __init__(self, revoked: Optional[Iterable[str]] = None):
        self.revoked = set(revoked or ())
        logger.info("MockIdentityService initialized (token == subject)")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def verify_token(self, token: str) -> str:
        token = token.strip()
        if not token or token in self.revoked:
            raise UnauthorizedError("Mock: token rejected")
        return token

    async def health_check(self) -> bool:
        return True
