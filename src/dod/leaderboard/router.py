"""Leaderboard and season endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from dod.auth.dependencies import get_current_user_id
from dod.config import get_settings
from dod.database import get_session
from dod.leaderboard.schemas import LeaderboardResponse, PlayerRankResponse, SeasonResponse
from dod.leaderboard.service import (
    fetch_active_season,
    fetch_player_season_rank,
    get_public_leaderboard,
    time_remaining_ms,
)
from dod.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Active season top entries and the crown. Public, briefly cacheable."""
    response.headers["Cache-Control"] = get_settings().leaderboard_cache_control
    return await get_public_leaderboard(db, get_optional_redis())


@router.get("/leaderboard/me", response_model=PlayerRankResponse | None)
async def get_my_rank(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> dict | None:
    """Caller's rank in the active season, or null without a verified run."""
    season = await fetch_active_season(db)
    return await fetch_player_season_rank(db, season.id if season else None, user_id)


@router.get("/seasons/active", response_model=SeasonResponse | None)
async def get_active_season(
    db: AsyncSession = Depends(get_session),
) -> SeasonResponse | None:
    """The active season, or null between seasons."""
    season = await fetch_active_season(db)
    if season is None:
        return None
    return SeasonResponse(
        id=season.id,
        name=season.name,
        starts_at=season.starts_at,
        ends_at=season.ends_at,
        is_active=season.is_active,
        time_remaining_ms=time_remaining_ms(season),
    )
