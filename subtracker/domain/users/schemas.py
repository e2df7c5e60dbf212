"""Pydantic schemas for signup and login."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    """Username/password pair posted to signup and login."""

    username: str = Field(max_length=150)
    password: str = Field(max_length=1024)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=False)


class UserOut(BaseModel):
    id: int
    username: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
