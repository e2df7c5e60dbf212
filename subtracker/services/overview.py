"""Categories joined with their subscriptions, plus cost subtotals."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.validation import to_money
from subtracker.domain.categories.models import Category
from subtracker.domain.categories.services import CategoryStore
from subtracker.domain.subscriptions.models import Subscription
from subtracker.domain.subscriptions.services import SubscriptionStore

StateResolver = Callable[[Subscription], str]


def _default_state(subscription: Subscription) -> str:
    return "cancelled" if subscription.cancelled_at is not None else "active"


@dataclass(slots=True)
class _CategoryBucket:
    category: Category
    subscriptions: list[Subscription] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        # processing rows still have a null cancelled_at and are counted
        return sum(
            (to_money(item.cost) for item in self.subscriptions if item.cancelled_at is None),
            Decimal("0.00"),
        )


def _subscription_payload(subscription: Subscription, state: str) -> dict[str, Any]:
    return {
        "id": subscription.id,
        "name": subscription.name,
        "cost": to_money(subscription.cost),
        "billing_cycle": subscription.billing_cycle,
        "renewal_date": subscription.renewal_date,
        "account_info": subscription.account_info,
        "category_id": subscription.category_id,
        "user_id": subscription.user_id,
        "created_at": subscription.created_at,
        "cancelled_at": subscription.cancelled_at,
        "status": state,
    }


async def build_categories_with_subscriptions(
    user_id: int,
    db: AsyncSession,
    *,
    state_of: Optional[StateResolver] = None,
) -> dict[str, Any]:
    """Return the user's categories, each with its subscriptions and subtotal.

    Subscriptions come from a single query partitioned by category id. The
    per-category subtotal sums ``cost`` over rows whose ``cancelled_at`` is
    null, and ``grand_total`` is the sum of the subtotals. Amounts are
    Decimals quantized to cents.
    """
    resolve_state = state_of or _default_state

    categories = await CategoryStore(db).list_categories(user_id)
    subscriptions = await SubscriptionStore(db).list_for_user(user_id)

    by_category: dict[int, list[Subscription]] = defaultdict(list)
    for subscription in subscriptions:
        by_category[subscription.category_id].append(subscription)

    buckets = [
        _CategoryBucket(category=category, subscriptions=by_category.get(category.id, []))
        for category in categories
    ]

    grand_total = sum((bucket.subtotal for bucket in buckets), Decimal("0.00"))

    return {
        "categories": [
            {
                "id": bucket.category.id,
                "name": bucket.category.name,
                "created_at": bucket.category.created_at,
                "user_id": bucket.category.user_id,
                "subscriptions": [
                    _subscription_payload(item, resolve_state(item)) for item in bucket.subscriptions
                ],
                "subtotal": bucket.subtotal,
            }
            for bucket in buckets
        ],
        "grand_total": to_money(grand_total),
    }
