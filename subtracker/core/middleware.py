"""Custom middleware components for the application."""
from __future__ import annotations

import logging
import secrets
import time
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from subtracker.core.config import settings
from subtracker.core.cookies import SESSION_COOKIE_NAME, parse_session_cookie
from subtracker.core.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, SAFE_METHODS, csrf_manager
from subtracker.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach request context (id, timing) and log a compact access line."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self._skip_prefixes = ("/health",)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get("X-Request-ID") or secrets.token_hex(8)
        request.state.request_id = request_id
        path = request.url.path
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Unhandled error for %s %s [request_id=%s]",
                request.method,
                path,
                request_id,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers.setdefault("X-Request-ID", request_id)

        if not path.startswith(self._skip_prefixes):
            status = getattr(response, "status_code", "unknown")
            client = request.client.host if request.client else "unknown"
            logger.info(
                "Handled %s %s -> %s in %.1fms (client=%s) [request_id=%s]",
                request.method,
                path,
                status,
                duration_ms,
                client,
                request_id,
            )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Apply a standard set of security-focused HTTP response headers."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        response = await call_next(request)

        # JSON only; nothing should ever be framed or scripted.
        response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Cache-Control", "no-store")

        if settings.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains",
            )

        return response


class CSRFMiddleware(BaseHTTPMiddleware):
    """Validate CSRF tokens for authenticated requests that mutate state."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.scope.get("type") != "http":
            return await call_next(request)

        if not settings.ENABLE_CSRF_JSON:
            return await call_next(request)

        if request.method.upper() in SAFE_METHODS:
            return await call_next(request)

        raw_session = request.cookies.get(SESSION_COOKIE_NAME)
        if not raw_session:
            # anonymous requests are rejected later by the session dependency
            return await call_next(request)
        try:
            user_id = parse_session_cookie(raw_session)
        except UnauthorizedError as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

        token = request.headers.get(CSRF_HEADER_NAME) or request.cookies.get(CSRF_COOKIE_NAME)
        if not token or not csrf_manager.validate(token, user_id):
            logger.warning("Rejected request with invalid CSRF token on %s", request.url.path)
            return JSONResponse(
                status_code=403,
                content={"detail": "Invalid or missing CSRF token."},
            )

        return await call_next(request)


__all__ = ["CSRFMiddleware", "RequestContextMiddleware", "SecurityHeadersMiddleware"]
