import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import Conflict
from ..models import User
from ..roles import Role
from ..schemas import Provider, SocialProfile
from ..security import hash_password, verify_password

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: Role = Role.user,
) -> User:
    """Create an email/password identity; duplicate emails are rejected."""
    if await get_user_by_email(db, email) is not None:
        raise Conflict("Email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=Role(role).value,
        provider=Provider.email.value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise Conflict("Email already exists")
    await db.refresh(user)
    logger.info(f"Created user id={user.id} role={user.role}")
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the user for valid email/password credentials, else None."""
    user = await get_user_by_email(db, email)
    if user is None or user.provider != Provider.email.value:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def find_or_create_social_user(db: AsyncSession, profile: SocialProfile) -> User:
    """
    Resolve a provider identity to a local user.

    Match on (provider, provider_id) first, then link the provider to an
    existing account with the same email, else create a `user`-role account.
    """
    result = await db.execute(
        select(User).where(
            User.provider == profile.provider.value,
            User.provider_id == profile.provider_id,
        )
    )
    user = result.scalar_one_or_none()
    if user is not None:
        return user

    user = await get_user_by_email(db, profile.email)
    if user is not None:
        user.provider = profile.provider.value
        user.provider_id = profile.provider_id
        logger.info(
            f"Linked provider={profile.provider.value} to user id={user.id}")
    else:
        user = User(
            email=profile.email,
            name=profile.name,
            role=Role.user.value,
            provider=profile.provider.value,
            provider_id=profile.provider_id,
        )
        db.add(user)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Account already linked to another identity")
    await db.refresh(user)
    return user
