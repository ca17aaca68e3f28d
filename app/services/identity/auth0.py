"""
Auth0 Identity Service Implementation

Verifies RS256 access tokens issued by an Auth0 tenant.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - AUTH0_AUDIENCE: API identifier configured in the Auth0 dashboard
    - AUTH0_ISSUER_BASE_URL: https://<tenant>.auth0.com/

The tenant's JSON Web Key Set is fetched with httpx on first use and kept
for the process lifetime; an unknown key id triggers one refresh so key
rotation does not require a restart.
"""

import logging
from typing import Optional

import httpx
from jose import jwt, JWTError

from app.core.config import Settings
from app.core.exceptions import UnauthorizedError
from app.services.identity.base import BaseIdentityService

logger = logging.getLogger(__name__)


class Auth0IdentityService(BaseIdentityService):
    """
    Production Auth0 identity service.

    Example:
        >>> service = Auth0IdentityService(settings)
        >>> subject = await service.verify_token(token)
        'auth0|64f1c2...'
    """

    ALGORITHMS = ["RS256"]

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        """
        Raises:
            ValueError: If AUTH0_AUDIENCE or AUTH0_ISSUER_BASE_URL is missing
        """
        if not settings.auth0_audience or not settings.auth0_issuer_base_url:
            raise ValueError(
                "AUTH0_AUDIENCE and AUTH0_ISSUER_BASE_URL are required outside "
                "development mode. Set them in your .env file or environment variables."
            )

        self._audience = settings.auth0_audience
        # Auth0 issues tokens with a trailing slash on the issuer
        self._issuer = settings.auth0_issuer_base_url.rstrip("/") + "/"
        self._jwks_url = f"{self._issuer}.well-known/jwks.json"
        self._http = http_client or httpx.AsyncClient(timeout=5.0)
        self._jwks: Optional[dict] = None

        logger.info(f"Auth0IdentityService initialized (issuer={self._issuer})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "auth0"

    async def _fetch_jwks(self) -> dict:
        response = await self._http.get(self._jwks_url)
        response.raise_for_status()
        self._jwks = response.json()
        logger.debug(f"Auth0: Loaded {len(self._jwks.get('keys', []))} signing keys")
        return self._jwks

    async def _get_signing_key(self, kid: str) -> Optional[dict]:
        jwks = self._jwks or await self._fetch_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key

        # Keys may have been rotated since the last fetch
        jwks = await self._fetch_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key
        return None

    async def verify_token(self, token: str) -> str:
        """Verify signature, audience, issuer and expiry; return ``sub``."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise UnauthorizedError(f"Malformed token header: {e}")

        kid = header.get("kid")
        if not kid:
            raise UnauthorizedError("Token header has no key id")

        try:
            key = await self._get_signing_key(kid)
        except httpx.HTTPError as e:
            logger.error(f"Auth0: Could not fetch signing keys - {e}")
            raise UnauthorizedError("Signing keys unavailable")

        if key is None:
            raise UnauthorizedError(f"Unknown signing key {kid}")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=self.ALGORITHMS,
                audience=self._audience,
                issuer=self._issuer,
            )
        except JWTError as e:
            raise UnauthorizedError(f"Token rejected: {e}")

        subject = claims.get("sub")
        if not subject:
            raise UnauthorizedError("Token has no subject")
        return subject

    async def health_check(self) -> bool:
        """Check that the tenant's JWKS endpoint answers."""
        try:
            await self._fetch_jwks()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Auth0: Health check failed - {e}")
            return False

    async def aclose(self) -> None:
        await self._http.aclose()
