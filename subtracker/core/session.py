"""Session helpers and dependencies."""
from __future__ import annotations

from typing import Optional

from fastapi import Cookie, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.cookies import SESSION_COOKIE_NAME, parse_session_cookie
from subtracker.core.database import get_db
from subtracker.core.errors import UnauthorizedError
from subtracker.domain.users.models import User
from subtracker.domain.users.services import get_user


async def get_session_user_id(
    session_value: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
) -> int:
    """Return the user id stored in the signed session cookie."""
    return parse_session_cookie(session_value)


async def get_current_user(
    user_id: int = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the current user from the database using the session value."""
    user = await get_user(db, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user
