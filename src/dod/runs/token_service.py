"""Run token issuance.

A run token binds one user to the active season for a short window. It is
claimed exactly once by run submission (see ``verification.claim_run_token``).
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dod.config import get_settings
from dod.db.models import RunToken
from dod.leaderboard.service import fetch_active_season
from dod.runs.errors import NoActiveSeason, StorageFailure

logger = structlog.get_logger()


@dataclass(frozen=True)
class IssuedToken:
    run_token: str
    season_id: int
    expires_at: datetime


def generate_token_id() -> str:
    """Unguessable token id (256 bits, URL-safe)."""
    return secrets.token_urlsafe(32)


async def issue_run_token(
    db: AsyncSession,
    user_id: str,
    now: datetime | None = None,
) -> IssuedToken:
    """Issue a single-use run token for the caller in the active season.

    Raises:
        NoActiveSeason: no season is currently active.
        StorageFailure: the token row could not be written.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    try:
        season = await fetch_active_season(db)
    except SQLAlchemyError as e:
        raise StorageFailure("Failed to load the active season.") from e
    if season is None:
        raise NoActiveSeason()

    token = RunToken(
        token_id=generate_token_id(),
        user_id=user_id,
        season_id=season.id,
        server_nonce=str(uuid.uuid4()),
        created_at=now,
        expires_at=now + timedelta(seconds=settings.run_token_ttl_seconds),
        used=False,
    )
    db.add(token)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("run_token_issue_failed", user_id=user_id, error=str(e))
        raise StorageFailure("Failed to issue run token.") from e

    logger.info("run_token_issued", user_id=user_id, season_id=season.id)
    return IssuedToken(run_token=token.token_id, season_id=season.id, expires_at=token.expires_at)
