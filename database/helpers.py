"""
Credential store: parameterized lookups and inserts on the ``users`` table.

"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User

logger = logging.getLogger(__name__)


class DuplicateUserError(Exception):
    """A unique key on ``username`` or ``email`` rejected the write."""


async def find_user_by_username_or_email(
    session: AsyncSession,
    username: str,
    email: str,
) -> Optional[User]:
    """Single combined existence check used before registration."""
    result = await session.execute(
        select(User).where(or_(User.username == username, User.email == email)).limit(1)
    )
    return result.scalar_one_or_none()


async def find_user_for_login(session: AsyncSession, username_or_email: str) -> Optional[User]:
    """The login field doubles as username or email."""
    result = await session.execute(
        select(User)
        .where(or_(User.username == username_or_email, User.email == username_or_email))
        .order_by(User.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
    return await session.get(User, user_id)


async def insert_user(
    session: AsyncSession,
    username: str,
    email: str,
    password_hash: str,
    display_name: Optional[str] = None,
) -> User:
    """
    Persist a new user and return it with ``id`` and ``created_at`` populated.

    Raises ``DuplicateUserError`` when the store's unique keys reject the row,
    which is how a concurrent registration with the same handle loses.
    """
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        display_name=display_name or username,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        logger.info("Unique key rejected new user row")
        raise DuplicateUserError() from exc
    await session.refresh(user)
    return user
