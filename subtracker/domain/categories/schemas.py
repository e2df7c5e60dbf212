"""Pydantic schemas for category operations."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class CategoryCreate(BaseModel):
    """Schema for creating a category; the store trims and validates the name."""

    name: Any = None

    model_config = ConfigDict(extra="forbid")


class CategoryDelete(BaseModel):
    id: Any = None

    model_config = ConfigDict(extra="forbid")


class CategoryOut(BaseModel):
    """Schema for returning category data."""

    id: int
    name: str
    created_at: datetime | None
    user_id: int

    model_config = ConfigDict(from_attributes=True)
