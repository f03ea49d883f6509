"""User lookups used outside the CRUD layer."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spendsense.data.users.models import User

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    """Return the user with the given id, or None."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def ensure_user_exists(
    db: AsyncSession,
    user_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> User:
    """
    Return the user row for `user_id`, creating it if it does not exist yet.

    Users authenticate against an external provider, so the first request
    from a new account may arrive before any row exists locally.
    """
    existing = await get_user(db, user_id)
    if existing:
        return existing

    user = User(id=user_id, email=email, name=name)
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Created user record for {user_id}")
    return user
