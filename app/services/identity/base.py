"""
Identity Service Abstract Base Class

Bearer tokens are issued and signed by an external identity provider.
Implementations only answer one question: which subject does this token
belong to? Mapping the subject to a local user happens in the request
pipeline (app.auth).
"""

from abc import ABC, abstractmethod


class BaseIdentityService(ABC):
    """Abstract base class for identity services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the identity provider (e.g. "mock", "auth0")."""
        pass

    @abstractmethod
    async def verify_token(self, token: str) -> str:
        """
        Verify a bearer token.

        Args:
            token: Raw token without the "Bearer " prefix

        Returns:
            str: The verified subject (external identity id)

        Raises:
            UnauthorizedError: If the token is missing, malformed, expired
                or not issued for this API
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the provider's signing keys can be obtained.

        Returns:
            bool: True if tokens can currently be verified
        """
        pass
