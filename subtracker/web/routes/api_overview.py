"""API route for the categories-with-subscriptions overview."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.database import get_db
from subtracker.core.session import get_current_user
from subtracker.domain.subscriptions.cancellation import CancellationScheduler
from subtracker.domain.subscriptions.schemas import CancellationStateName, Money
from subtracker.domain.users.models import User
from subtracker.services.overview import build_categories_with_subscriptions
from subtracker.web.deps import get_cancellations

router = APIRouter()


class OverviewSubscription(BaseModel):
    id: int
    name: str
    cost: Money
    billing_cycle: str
    renewal_date: int
    account_info: str
    category_id: int
    user_id: int
    created_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    status: CancellationStateName


class OverviewCategory(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime]
    user_id: int
    subscriptions: list[OverviewSubscription]
    subtotal: Money


class OverviewOut(BaseModel):
    categories: list[OverviewCategory]
    grand_total: Money


@router.get("/overview", response_model=OverviewOut)
async def get_overview(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, Any]:
    """Return categories with their subscriptions and cost subtotals."""
    return await build_categories_with_subscriptions(
        user.id,
        db,
        state_of=lambda subscription: cancellations.state_of(subscription).value,
    )
