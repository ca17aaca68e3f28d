"""
Request Authentication Pipeline

Authentication is an ordered chain of FastAPI dependencies. Each stage either
returns an enriched ``AuthContext`` for the next stage or short-circuits the
request by raising ``UnauthorizedError`` (mapped to a bare 401):

    verify_bearer   Authorization header -> verified subject
    require_user    subject -> local user record

Routes that provision accounts stop after ``verify_bearer``; every other
protected route depends on ``require_user``.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UnauthorizedError
from app.database import get_db
from app.models import User
from app.services.identity import BaseIdentityService, get_identity_service
from app.services.users import get_user_by_auth0_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """What the pipeline knows about the caller so far."""
    auth0_id: str
    user: Optional[User] = None

    @property
    def user_id(self) -> str:
        if self.user is None:
            raise UnauthorizedError("No local user resolved")
        return self.user.id


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise UnauthorizedError("Empty bearer token")
    return token


async def verify_bearer(
    request: Request,
    identity: BaseIdentityService = Depends(get_identity_service),
) -> AuthContext:
    """Stage 1: verify the token with the identity provider."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    subject = await identity.verify_token(token)
    return AuthContext(auth0_id=subject)


async def require_user(
    context: AuthContext = Depends(verify_bearer),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Stage 2: map the verified subject to a local account."""
    user = await get_user_by_auth0_id(db, context.auth0_id)
    if not user:
        raise UnauthorizedError(f"No local account for subject {context.auth0_id}")
    return replace(context, user=user)
