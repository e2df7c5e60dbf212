"""Pydantic schemas for subscription operations.

Payload fields are loosely typed on purpose: range and type checks live in
the store so the HTTP layer and direct callers get the same messages.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
CancellationStateName = Literal["active", "processing", "cancelled"]


class SubscriptionCreate(BaseModel):
    name: Any = None
    cost: Any = None
    billing_cycle: Any = None
    renewal_date: Any = None
    account_info: Optional[str] = None
    category_id: Any = None

    model_config = ConfigDict(extra="forbid")


class SubscriptionCancellationUpdate(BaseModel):
    """Direct write of the cancellation timestamp; null reactivates."""

    id: Any = None
    cancelled_at: Any = None

    model_config = ConfigDict(extra="forbid")


class SubscriptionDelete(BaseModel):
    id: Any = None

    model_config = ConfigDict(extra="forbid")


class SubscriptionOut(BaseModel):
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

    model_config = ConfigDict(from_attributes=True)


class CancellationRequestOut(BaseModel):
    subscription_id: int
    confirmation_token: str
    grace_seconds: float


class CancellationConfirm(BaseModel):
    confirmation_token: str

    model_config = ConfigDict(extra="forbid")


class CancellationStatusOut(BaseModel):
    subscription_id: int
    state: CancellationStateName
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    last_error: Optional[str] = None
