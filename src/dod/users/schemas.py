"""Request/response schemas for profile endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    user_id: str
    username: str
    theme: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileUpdateRequest(BaseModel):
    """Create or update the caller's profile."""

    username: str
    theme: str | None = None
