"""Request-scoped dependencies shared by the API routers."""
from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.database import get_db
from subtracker.domain.categories.services import CategoryStore
from subtracker.domain.subscriptions.cancellation import CancellationScheduler
from subtracker.domain.subscriptions.services import SubscriptionStore


def get_category_store(db: AsyncSession = Depends(get_db)) -> CategoryStore:
    return CategoryStore(db)


def get_subscription_store(db: AsyncSession = Depends(get_db)) -> SubscriptionStore:
    return SubscriptionStore(db)


def get_cancellations(request: Request) -> CancellationScheduler:
    return request.app.state.cancellations
