"""JSON API router."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from subtracker.core.config import settings
from subtracker.core.csrf import CSRF_COOKIE_NAME, csrf_manager
from subtracker.core.session import get_session_user_id
from subtracker.web.routes import api_categories, api_funfact, api_overview, api_subscriptions, auth

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(api_categories.router, prefix="/categories", tags=["categories"])
router.include_router(api_subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
router.include_router(api_overview.router, tags=["overview"])
router.include_router(api_funfact.router, tags=["funfact"])


@router.get("/csrf-token")
async def get_csrf_token(user_id: int = Depends(get_session_user_id)):
    """Return a CSRF token tied to the current session and set a cookie for double-submit defense."""
    if not settings.ENABLE_CSRF_JSON:
        return {"csrfToken": None}

    token = csrf_manager.generate(user_id)
    response = JSONResponse({"csrfToken": token})
    # Double-submit: non-HttpOnly cookie so the client can echo it in the header
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        httponly=False,
        samesite="lax",
        secure=settings.is_production,
    )
    return response
