"""CSRF token utilities for JSON APIs."""
from __future__ import annotations

import secrets

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from subtracker.core.config import settings

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}
CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"


class CsrfManager:
    """Generate and validate CSRF tokens bound to a user session."""

    def __init__(self) -> None:
        self._serializer = URLSafeTimedSerializer(settings.SECRET_KEY, salt="csrf-token")

    def generate(self, user_id: int) -> str:
        payload = {
            "uid": user_id,
            "nonce": secrets.token_urlsafe(16),
        }
        return self._serializer.dumps(payload)

    def validate(self, token: str, user_id: int, max_age: int = 3600) -> bool:
        try:
            data = self._serializer.loads(token, max_age=max_age)
        except (BadSignature, SignatureExpired):
            return False
        return isinstance(data, dict) and data.get("uid") == user_id


csrf_manager = CsrfManager()


__all__ = [
    "CSRF_COOKIE_NAME",
    "CSRF_HEADER_NAME",
    "SAFE_METHODS",
    "csrf_manager",
]
