"""Season leaderboard reads.

The top N is selected in SQL with the same ordering as
``ranking.rank_entries``, which then numbers the rows. The public board is
cached in Redis for a few seconds when Redis is available; accepted runs
that change the board drop the cache.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dod.config import get_settings
from dod.db.models import Crown, LeaderboardEntry, Profile, Season
from dod.leaderboard.ranking import player_rank, rank_entries
from dod.leaderboard.schemas import (
    CrownResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
)

logger = logging.getLogger(__name__)

LEADERBOARD_CACHE_KEY = "leaderboard:public"


def _as_utc(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def time_remaining_ms(season: Season, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    return max(0, int((_as_utc(season.ends_at) - now).total_seconds() * 1000))


async def fetch_active_season(db: AsyncSession) -> Season | None:
    """The active season; if several are flagged, the latest-starting one wins."""
    result = await db.execute(
        select(Season)
        .where(Season.is_active.is_(True))
        .order_by(Season.starts_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def fetch_season_leaderboard(
    db: AsyncSession,
    season_id: int | None = None,
    limit: int | None = None,
) -> list[dict]:
    """Top entries for a season (the active one by default), ranked."""
    if limit is None:
        limit = get_settings().leaderboard_limit
    if season_id is None:
        season = await fetch_active_season(db)
        if season is None:
            return []
        season_id = season.id

    crown_holder = (
        await db.execute(select(Crown.user_id).where(Crown.season_id == season_id))
    ).scalar_one_or_none()

    result = await db.execute(
        select(LeaderboardEntry, Profile.username, Season.name)
        .join(Season, Season.id == LeaderboardEntry.season_id)
        .outerjoin(Profile, Profile.user_id == LeaderboardEntry.user_id)
        .where(LeaderboardEntry.season_id == season_id)
        .order_by(
            LeaderboardEntry.best_score.desc(),
            LeaderboardEntry.updated_at.asc(),
            LeaderboardEntry.user_id.asc(),
        )
        .limit(limit)
    )

    entries = []
    for entry, username, season_name in result.all():
        entries.append({
            "season_id": entry.season_id,
            "season_name": season_name,
            "user_id": entry.user_id,
            "username": username,
            "best_score": entry.best_score,
            "updated_at": _as_utc(entry.updated_at),
            "has_crown": entry.user_id == crown_holder,
        })
    # SQL picks the top N; rank numbering comes from the shared ordering.
    return rank_entries(entries)


async def fetch_crown(db: AsyncSession, season_id: int) -> dict | None:
    """Current crown holder for a season, or None if nobody has cashed out yet."""
    result = await db.execute(
        select(Crown, Profile.username, Season.name)
        .join(Season, Season.id == Crown.season_id)
        .outerjoin(Profile, Profile.user_id == Crown.user_id)
        .where(Crown.season_id == season_id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    crown, username, season_name = row
    return {
        "season_id": crown.season_id,
        "season_name": season_name,
        "user_id": crown.user_id,
        "username": username,
        "score": crown.score,
        "run_id": crown.run_id,
        "updated_at": _as_utc(crown.updated_at),
    }


async def fetch_player_season_rank(
    db: AsyncSession, season_id: int | None, user_id: str | None,
) -> dict | None:
    """A player's rank and best score this season, or None without an entry."""
    if season_id is None or user_id is None:
        return None

    entry = (
        await db.execute(
            select(LeaderboardEntry).where(
                LeaderboardEntry.season_id == season_id,
                LeaderboardEntry.user_id == user_id,
            )
        )
    ).scalar_one_or_none()
    if entry is None:
        return None

    strictly_greater = (
        await db.execute(
            select(func.count()).select_from(LeaderboardEntry).where(
                LeaderboardEntry.season_id == season_id,
                LeaderboardEntry.best_score > entry.best_score,
            )
        )
    ).scalar_one()
    equal_and_earlier = (
        await db.execute(
            select(func.count()).select_from(LeaderboardEntry).where(
                and_(
                    LeaderboardEntry.season_id == season_id,
                    LeaderboardEntry.best_score == entry.best_score,
                    LeaderboardEntry.updated_at < entry.updated_at,
                )
            )
        )
    ).scalar_one()

    return {
        "rank": player_rank(strictly_greater, equal_and_earlier),
        "score": entry.best_score,
    }


async def get_public_leaderboard(db: AsyncSession, redis: Redis | None = None) -> dict:
    """Active season board plus crown, JSON-ready. Served from cache when fresh."""
    if redis is not None:
        try:
            cached = await redis.get(LEADERBOARD_CACHE_KEY)
        except RedisError:
            logger.warning("leaderboard_cache_read_failed", exc_info=True)
            cached = None
        if cached:
            return json.loads(cached)

    logger.debug("leaderboard_cache_miss")
    season = await fetch_active_season(db)
    if season is None:
        payload = LeaderboardResponse(leaderboard=[], crown=None)
    else:
        rows = await fetch_season_leaderboard(db, season.id)
        crown = await fetch_crown(db, season.id)
        payload = LeaderboardResponse(
            leaderboard=[LeaderboardEntryResponse(**row) for row in rows],
            crown=CrownResponse(**crown) if crown else None,
        )
    data = payload.model_dump(mode="json")

    if redis is not None:
        try:
            await redis.set(
                LEADERBOARD_CACHE_KEY,
                json.dumps(data),
                ex=get_settings().leaderboard_cache_ttl_seconds,
            )
        except RedisError:
            logger.warning("leaderboard_cache_write_failed", exc_info=True)
    return data


async def invalidate_leaderboard_cache(redis: Redis | None) -> None:
    if redis is None:
        return
    try:
        await redis.delete(LEADERBOARD_CACHE_KEY)
    except RedisError:
        logger.warning("leaderboard_cache_invalidate_failed", exc_info=True)
