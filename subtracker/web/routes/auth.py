"""Signup, login and logout for the JSON API."""
import hashlib
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.config import settings
from subtracker.core.cookies import clear_session_cookie, set_session_cookie
from subtracker.core.database import get_db
from subtracker.core.errors import SubTrackerError, UnauthorizedError
from subtracker.core.rate_limit import login_throttle
from subtracker.core.session import get_current_user
from subtracker.domain.users.models import User
from subtracker.domain.users.schemas import Credentials, UserOut
from subtracker.domain.users.services import authenticate, create_user

router = APIRouter()

logger = logging.getLogger(__name__)


class TooManyAttemptsError(SubTrackerError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many login attempts. Please try again later."


def _throttle_key(request: Request, username: str) -> str:
    client_host = request.client.host if request.client else "unknown"
    return f"{client_host}:{username.strip().lower()}"


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def signup(payload: Credentials, db: AsyncSession = Depends(get_db)) -> User:
    """Create an account."""
    return await create_user(db, username=payload.username, password=payload.password)


@router.post("/login", response_model=UserOut)
async def login(
    payload: Credentials,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Check credentials and set the signed session cookie."""
    rate_key = _throttle_key(request, payload.username)
    blocked = await login_throttle.is_blocked(
        rate_key,
        settings.LOGIN_RATE_LIMIT_MAX,
        settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    )
    if blocked:
        anonymised_key = hashlib.sha256(rate_key.encode()).hexdigest()[:12]
        logger.warning("Login rate limit exceeded for identifier %s", anonymised_key)
        raise TooManyAttemptsError()

    user = await authenticate(db, username=payload.username, password=payload.password)
    if user is None:
        await login_throttle.record_failure(rate_key)
        raise UnauthorizedError("Invalid username or password")

    await login_throttle.reset(rate_key)
    response = JSONResponse(UserOut.model_validate(user).model_dump(mode="json"))
    set_session_cookie(response, user.id)
    return response


@router.post("/logout")
async def logout():
    """Log user out."""
    response = JSONResponse({"message": "Logged out"})
    clear_session_cookie(response)
    return response


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> User:
    return user
