"""Pydantic request/response models for run endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class StartRunResponse(BaseModel):
    run_token: str
    expires_at: datetime
    season_id: int


class SubmitRunRequest(BaseModel):
    """Body of a run submission. Types are strict: ``8.0`` or ``"8"`` is not an integer score."""

    model_config = ConfigDict(extra="ignore")

    run_token: StrictStr = Field(min_length=1, max_length=64)
    final_score: StrictInt
    doubles: StrictInt
    duration_ms: StrictInt
    digest: StrictStr = Field(min_length=1)


class SubmitRunResponse(BaseModel):
    accepted: bool = True
    new_best: bool
    crown_stolen: bool
    run_id: int
    score: int


class RejectedRunResponse(BaseModel):
    accepted: bool = False
    error: str
    detail: str
