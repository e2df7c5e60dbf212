"""API routes for subscriptions and their cancellation workflow."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from subtracker.core.errors import CancellationConflictError
from subtracker.core.session import get_current_user
from subtracker.core.validation import parse_identifier, parse_timestamp
from subtracker.domain.subscriptions.cancellation import CancellationScheduler
from subtracker.domain.subscriptions.models import Subscription
from subtracker.domain.subscriptions.schemas import (
    CancellationConfirm,
    CancellationRequestOut,
    CancellationStatusOut,
    SubscriptionCancellationUpdate,
    SubscriptionCreate,
    SubscriptionDelete,
    SubscriptionOut,
)
from subtracker.domain.subscriptions.services import SubscriptionStore
from subtracker.domain.users.models import User
from subtracker.web.deps import get_cancellations, get_subscription_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SubscriptionOut, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    payload: SubscriptionCreate,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> Subscription:
    """Create an active subscription in one of the user's categories."""
    subscription = await store.create_subscription(
        payload.name,
        payload.cost,
        payload.billing_cycle,
        payload.renewal_date,
        payload.account_info,
        payload.category_id,
        user.id,
    )
    logger.info("User %s created subscription %s", user.id, subscription.id)
    return subscription


@router.put("")
async def update_subscription_cancellation(
    payload: SubscriptionCancellationUpdate,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, Any]:
    """Write ``cancelled_at`` directly; ``null`` reactivates the subscription."""
    subscription_id = parse_identifier(payload.id, "subscription ID")
    cancelled_at = parse_timestamp(payload.cancelled_at)

    if cancellations.is_processing(user.id, subscription_id):
        raise CancellationConflictError("Cancellation already in progress")

    await store.set_cancellation(subscription_id, user.id, cancelled_at)
    cancellations.forget(user.id, subscription_id)
    return {
        "message": (
            "Subscription cancelled successfully"
            if cancelled_at
            else "Subscription reactivated successfully"
        ),
        "cancelled_at": payload.cancelled_at,
    }


@router.delete("")
async def delete_subscription(
    payload: SubscriptionDelete,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, str]:
    subscription_id = parse_identifier(payload.id, "subscription ID")
    await store.delete_subscription(subscription_id, user.id)
    cancellations.forget(user.id, subscription_id)
    logger.info("User %s deleted subscription %s", user.id, subscription_id)
    return {"message": "Subscription deleted successfully"}


@router.post("/{subscription_id}/cancellation", response_model=CancellationRequestOut)
async def request_cancellation(
    subscription_id: int,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, Any]:
    """Start the confirmation step; nothing changes until it is confirmed."""
    subscription = await store.get_subscription(subscription_id, user.id)
    token = cancellations.request_cancellation(subscription)
    return {
        "subscription_id": subscription.id,
        "confirmation_token": token,
        "grace_seconds": cancellations.grace_seconds,
    }


@router.post(
    "/{subscription_id}/cancellation/confirm",
    response_model=CancellationStatusOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def confirm_cancellation(
    subscription_id: int,
    payload: CancellationConfirm,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, Any]:
    """Confirm the cancellation; it is persisted after the grace period."""
    subscription = await store.get_subscription(subscription_id, user.id)
    cancellations.confirm_cancellation(subscription, payload.confirmation_token)
    return cancellations.status(subscription)


@router.get("/{subscription_id}/cancellation", response_model=CancellationStatusOut)
async def get_cancellation_status(
    subscription_id: int,
    user: User = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
    cancellations: CancellationScheduler = Depends(get_cancellations),
) -> dict[str, Any]:
    subscription = await store.get_subscription(subscription_id, user.id)
    return cancellations.status(subscription)
