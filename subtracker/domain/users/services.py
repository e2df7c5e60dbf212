"""User accounts: creation and password authentication."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.errors import DuplicateNameError, StorageError, ValidationError
from subtracker.core.security import password_hasher

from .models import User

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    try:
        return await db.get(User, user_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load user %s", user_id)
        raise StorageError("Failed to load user") from exc


async def create_user(db: AsyncSession, *, username: str, password: str) -> User:
    """Create an account; usernames are trimmed and must be unique."""
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password are required")

    user = User(username=username, password_hash=password_hasher.hash(password))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateNameError("Username already taken") from None
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create user %r", username)
        raise StorageError("Failed to create user") from exc

    await db.refresh(user)
    logger.info("Created user %s", user.id)
    return user


async def authenticate(db: AsyncSession, *, username: str, password: str) -> User | None:
    """Return the user when the password matches, otherwise None."""
    try:
        result = await db.execute(select(User).where(User.username == username.strip()))
    except SQLAlchemyError as exc:
        logger.exception("Failed to look up user for login")
        raise StorageError("Failed to authenticate") from exc

    user = result.scalar_one_or_none()
    if user is None or not password_hasher.verify(password, user.password_hash):
        return None
    return user
