"""Player profile business logic."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from dod.db.models import Profile

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,24}$")
VALID_THEMES = frozenset({"dark", "light"})


class UsernameTakenError(ValueError):
    """Raised when another player already holds the username."""


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    """Fetch a player's profile by identity-provider user id."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def upsert_profile(
    db: AsyncSession,
    user_id: str,
    username: str,
    theme: str | None = None,
) -> Profile:
    """
    Create or update the caller's profile.

    Raises:
        ValueError: If the username or theme is malformed.
        UsernameTakenError: If another player holds the username (case-insensitive).
    """
    if not USERNAME_PATTERN.match(username):
        msg = "Username must be 3-24 chars using letters, numbers, or _."
        raise ValueError(msg)
    if theme is not None and theme not in VALID_THEMES:
        msg = f"Theme must be one of: {', '.join(sorted(VALID_THEMES))}"
        raise ValueError(msg)

    result = await db.execute(
        select(Profile.user_id)
        .where(func.lower(Profile.username) == username.lower())
        .where(Profile.user_id != user_id)
    )
    if result.scalar_one_or_none() is not None:
        msg = "That username is already taken."
        raise UsernameTakenError(msg)

    now = datetime.now(timezone.utc)
    profile = await get_profile(db, user_id)
    if profile is None:
        profile = Profile(user_id=user_id, username=username, theme=theme or "dark", created_at=now, updated_at=now)
        db.add(profile)
    else:
        profile.username = username
        if theme is not None:
            profile.theme = theme
        profile.updated_at = now

    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        msg = "That username is already taken."
        raise UsernameTakenError(msg) from e

    logger.info("profile_saved", user_id=user_id, username=username)
    return profile
