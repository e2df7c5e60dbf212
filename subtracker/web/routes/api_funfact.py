"""Quote of the day shown on the dashboard."""
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, status

from subtracker.core.errors import SubTrackerError
from subtracker.core.session import get_current_user
from subtracker.domain.users.models import User
from subtracker.services.llm_client import generate_quote

router = APIRouter()
logger = logging.getLogger(__name__)


class QuoteUnavailableError(SubTrackerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Failed to fetch fun fact"


@router.get("/funfact")
async def get_fun_fact(user: User = Depends(get_current_user)) -> dict[str, str]:
    try:
        fun_fact = await generate_quote()
    except ValueError as exc:
        logger.info("Quote generation skipped: %s", exc)
        raise QuoteUnavailableError() from exc
    except httpx.HTTPError as exc:
        logger.error("Quote provider request failed", exc_info=exc)
        raise QuoteUnavailableError() from exc
    return {"funFact": fun_fact}
