"""API routes for managing categories."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from subtracker.core.session import get_current_user
from subtracker.core.validation import parse_identifier
from subtracker.domain.categories.models import Category
from subtracker.domain.categories.schemas import CategoryCreate, CategoryDelete, CategoryOut
from subtracker.domain.categories.services import CategoryStore
from subtracker.domain.subscriptions.cancellation import CancellationScheduler
from subtracker.domain.subscriptions.models import Subscription
from subtracker.domain.subscriptions.schemas import SubscriptionOut
from subtracker.domain.subscriptions.services import SubscriptionStore
from subtracker.domain.users.models import User
from subtracker.web.deps import get_cancellations, get_category_store, get_subscription_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[CategoryOut])
async def list_categories(
    user: User = Depends(get_current_user),
    store: CategoryStore = Depends(get_category_store),
) -> list[Category]:
    """Return all categories for the current user, newest first."""
    return await store.list_categories(user.id)


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    user: User = Depends(get_current_user),
    store: CategoryStore = Depends(get_category_store),
) -> Category:
    """Create a new category for the current user."""
    category = await store.create_category(payload.name, user.id)
    logger.info("User %s created category %s", user.id, category.id)
    return category


@router.delete("")
async def delete_category(
    payload: CategoryDelete,
    user: User = Depends(get_current_user),
    store: CategoryStore = Depends(get_category_store),
    subscriptions: SubscriptionStore = Depends(get_subscription_store),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, str]:
    """Delete a category together with its subscriptions."""
    category_id = parse_identifier(payload.id, "category ID")
    doomed = await subscriptions.list_by_category(category_id, user.id)
    await store.delete_category(category_id, user.id)
    for subscription in doomed:
        cancellations.forget(user.id, subscription.id)
    logger.info("User %s deleted category %s", user.id, category_id)
    return {"message": "Category deleted successfully"}


@router.get("/{category_id}/subscriptions", response_model=list[SubscriptionOut])
async def list_category_subscriptions(
    category_id: int,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> list[Subscription]:
    """Return the subscriptions of one of the user's categories."""
    return await store.list_by_category(category_id, user.id)
