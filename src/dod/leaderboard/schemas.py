"""Pydantic response models for leaderboard and season endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SeasonResponse(BaseModel):
    id: int
    name: str
    starts_at: datetime
    ends_at: datetime
    is_active: bool
    time_remaining_ms: int


class LeaderboardEntryResponse(BaseModel):
    rank: int
    season_id: int
    season_name: str
    user_id: str
    username: str | None
    best_score: int
    updated_at: datetime
    has_crown: bool


class CrownResponse(BaseModel):
    season_id: int
    season_name: str
    user_id: str
    username: str | None
    score: int
    run_id: int
    updated_at: datetime


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntryResponse]
    crown: CrownResponse | None


class PlayerRankResponse(BaseModel):
    rank: int
    score: int
