"""Utilities for working with HTTP cookies."""
from __future__ import annotations

from fastapi import Response
from itsdangerous import BadSignature, URLSafeSerializer

from subtracker.core.config import settings
from subtracker.core.errors import UnauthorizedError

SESSION_COOKIE_NAME = "user_session"
_serializer = URLSafeSerializer(settings.SECRET_KEY, salt="session-cookie")


def _make_session_value(user_id: int) -> str:
    """Create a signed session payload containing the user id."""
    return _serializer.dumps({"uid": user_id})


def parse_session_cookie(raw_value: str | None) -> int:
    """Parse and validate the signed session cookie, returning the user id."""
    if not raw_value:
        raise UnauthorizedError("Not authenticated")
    try:
        data = _serializer.loads(raw_value)
    except BadSignature:
        raise UnauthorizedError("Invalid session") from None
    user_id = data.get("uid") if isinstance(data, dict) else None
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise UnauthorizedError("Invalid session")
    return user_id


def set_session_cookie(response: Response, user_id: int) -> None:
    """Set the session cookie with secure defaults."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=_make_session_value(user_id),
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response) -> None:
    """Remove the session cookie using the same security options."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
