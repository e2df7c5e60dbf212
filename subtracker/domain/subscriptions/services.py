"""Subscription store: per-user CRUD and the cancellation timestamp."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.errors import NotFoundError, StorageError
from subtracker.core.validation import (
    parse_billing_cycle,
    parse_cost,
    parse_identifier,
    parse_renewal_date,
    require_name,
)
from subtracker.domain.categories.services import CategoryStore

from .models import Subscription

logger = logging.getLogger(__name__)


class SubscriptionStore:
    """Subscriptions scoped by owning user (and category where relevant)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _require_category(self, category_id: int, user_id: int) -> None:
        await CategoryStore(self.db).get_category(category_id, user_id)

    async def list_by_category(self, category_id: int, user_id: int) -> list[Subscription]:
        """Return the category's subscriptions, newest first."""
        await self._require_category(category_id, user_id)
        try:
            result = await self.db.execute(
                select(Subscription)
                .where(Subscription.category_id == category_id, Subscription.user_id == user_id)
                .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to list subscriptions of category %s", category_id)
            raise StorageError("Failed to fetch subscriptions") from exc
        return list(result.scalars().all())

    async def list_for_user(self, user_id: int) -> list[Subscription]:
        """Return every subscription of the user in one query, newest first."""
        try:
            result = await self.db.execute(
                select(Subscription)
                .where(Subscription.user_id == user_id)
                .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to list subscriptions for user %s", user_id)
            raise StorageError("Failed to fetch subscriptions") from exc
        return list(result.scalars().all())

    async def get_subscription(self, subscription_id: int, user_id: int) -> Subscription:
        try:
            result = await self.db.execute(
                select(Subscription).where(
                    Subscription.id == subscription_id,
                    Subscription.user_id == user_id,
                )
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to load subscription %s", subscription_id)
            raise StorageError("Failed to fetch subscription") from exc

        subscription = result.scalar_one_or_none()
        if subscription is None:
            raise NotFoundError("Subscription not found")
        return subscription

    async def create_subscription(
        self,
        name: str,
        cost: Decimal | float | int,
        billing_cycle: str,
        renewal_date: int,
        account_info: str | None,
        category_id: int,
        user_id: int,
    ) -> Subscription:
        """Validate and insert an active subscription."""
        name = require_name(name, "subscription name")
        amount = parse_cost(cost)
        cycle = parse_billing_cycle(billing_cycle)
        renewal_day = parse_renewal_date(renewal_date)
        category_id = parse_identifier(category_id, "category ID")

        await self._require_category(category_id, user_id)

        subscription = Subscription(
            name=name,
            cost=amount,
            billing_cycle=cycle,
            renewal_date=renewal_day,
            account_info=account_info or "",
            category_id=category_id,
            user_id=user_id,
            cancelled_at=None,
        )
        self.db.add(subscription)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Failed to create subscription for user %s", user_id)
            raise StorageError("Failed to create subscription") from exc

        await self.db.refresh(subscription)
        return subscription

    async def set_cancellation(
        self,
        subscription_id: int,
        user_id: int,
        cancelled_at: datetime | None,
    ) -> None:
        """Set (or clear, with None) the cancellation timestamp."""
        try:
            result = await self.db.execute(
                update(Subscription)
                .where(Subscription.id == subscription_id, Subscription.user_id == user_id)
                .values(cancelled_at=cancelled_at)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Failed to update cancellation of subscription %s", subscription_id)
            raise StorageError("Failed to update subscription cancellation status") from exc

        if not result.rowcount:
            raise NotFoundError("Subscription not found")

    async def delete_subscription(self, subscription_id: int, user_id: int) -> None:
        try:
            result = await self.db.execute(
                delete(Subscription).where(
                    Subscription.id == subscription_id,
                    Subscription.user_id == user_id,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Failed to delete subscription %s", subscription_id)
            raise StorageError("Failed to delete subscription") from exc

        if not result.rowcount:
            raise NotFoundError("Subscription not found")
