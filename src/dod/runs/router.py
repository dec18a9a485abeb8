"""Run endpoints: token issuance and run submission."""

from __future__ import annotations

import json

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dod.auth.dependencies import get_current_user_id
from dod.config import get_settings
from dod.database import get_session
from dod.leaderboard.service import invalidate_leaderboard_cache
from dod.redis_client import get_optional_redis
from dod.runs.errors import GameError, InvalidRequest
from dod.runs.schemas import RejectedRunResponse, StartRunResponse, SubmitRunResponse
from dod.runs.token_service import issue_run_token
from dod.runs.verification import submit_run

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/runs", tags=["Runs"])


@router.post("/start", response_model=StartRunResponse)
async def start_run(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StartRunResponse:
    """Issue a single-use run token bound to the active season."""
    issued = await issue_run_token(db, user_id)
    return StartRunResponse(
        run_token=issued.run_token,
        expires_at=issued.expires_at,
        season_id=issued.season_id,
    )


async def _read_bounded_body(request: Request, limit: int) -> bytes:
    """Read the request body, refusing anything over ``limit`` bytes."""
    too_large = InvalidRequest(f"Request body exceeds {limit} bytes.")
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise too_large
    raw = bytearray()
    async for chunk in request.stream():
        raw.extend(chunk)
        if len(raw) > limit:
            raise too_large
    return bytes(raw)


@router.post(
    "/submit",
    response_model=SubmitRunResponse,
    responses={
        400: {"model": RejectedRunResponse},
        429: {"model": RejectedRunResponse},
        500: {"model": RejectedRunResponse},
    },
)
async def submit_run_endpoint(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> SubmitRunResponse | JSONResponse:
    """Verify a cashed-out run and update the season board and crown.

    The body is parsed here rather than by FastAPI so that malformed payloads
    are reported as ``invalid_request`` after authentication.
    """
    try:
        raw = await _read_bounded_body(request, get_settings().max_submit_body_bytes)
        try:
            body = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidRequest() from e
        result = await submit_run(db, user_id, body)
    except GameError as e:
        return JSONResponse(
            status_code=e.status_code,
            content=RejectedRunResponse(error=e.code, detail=e.message).model_dump(),
        )

    if result.new_best or result.crown_stolen:
        await invalidate_leaderboard_cache(get_optional_redis())

    return SubmitRunResponse(
        accepted=True,
        new_best=result.new_best,
        crown_stolen=result.crown_stolen,
        run_id=result.run_id,
        score=result.score,
    )
