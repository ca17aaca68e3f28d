"""
Profile Store

CRUD for local user records keyed by the identity provider's subject id.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, UnauthorizedError
from app.models import User
from app.schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


async def get_user_by_auth0_id(db: AsyncSession, auth0_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.auth0_id == auth0_id))
    return result.scalar_one_or_none()


async def get_current_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def create_current_user(
    db: AsyncSession,
    auth0_id: str,
    data: UserCreate,
) -> tuple[User, bool]:
    """
    Provision a local account for a verified subject.

    Idempotent: if an account already exists for ``auth0_id`` it is returned
    untouched.

    Returns:
        (user, created) where ``created`` is False for an existing account

    Raises:
        UnauthorizedError: If the body names a different subject than the token
    """
    if data.auth0_id and data.auth0_id != auth0_id:
        raise UnauthorizedError("auth0Id in body does not match token subject")

    existing = await get_user_by_auth0_id(db, auth0_id)
    if existing:
        logger.debug(f"User already provisioned for {auth0_id}")
        return existing, False

    user = User(
        auth0_id=auth0_id,
        email=data.email,
        name=data.name,
        address_line1=data.address_line1,
        city=data.city,
        country=data.country,
    )
    db.add(user)

    try:
        await db.commit()
    except IntegrityError:
        # Two provisioning calls for the same subject raced; keep the winner
        await db.rollback()
        existing = await get_user_by_auth0_id(db, auth0_id)
        if existing is None:
            raise
        return existing, False

    logger.info(f"User {user.id} created for {auth0_id}")
    return user, True


async def update_current_user(db: AsyncSession, user_id: str, data: UserUpdate) -> User:
    """Overwrite all four mutable profile fields."""
    user = await get_current_user(db, user_id)

    user.name = data.name
    user.address_line1 = data.address_line1
    user.country = data.country
    user.city = data.city

    await db.commit()
    logger.info(f"User {user.id} profile updated")
    return user
