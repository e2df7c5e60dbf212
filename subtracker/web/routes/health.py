import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.database import get_db
from subtracker.domain.subscriptions.cancellation import CancellationScheduler
from subtracker.web.deps import get_cancellations

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", summary="Health check")
async def health(
    db: AsyncSession = Depends(get_db),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, object]:
    """Report database reachability and the number of pending cancellation timers."""
    try:
        await db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as exc:
        db_status = "error"
        logger.error("Database healthcheck failed", exc_info=exc)

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "database": db_status,
        "pending_cancellations": cancellations.pending_count,
    }
