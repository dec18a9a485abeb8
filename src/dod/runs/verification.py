"""Run verification and the season ledger.

Submission pipeline, each step short-circuiting with a GameError:

    1. caller identity (resolved by the auth dependency)
    2. structural validation of the body
    3. per-user submission rate limit
    4. plausibility of the reported metrics
    5. atomic claim of the run token
    6-8. persist the run, then raise the player's best and the season crown,
         all in one transaction

The token claim is committed on its own before step 6. Once claimed, a token
stays spent even if persistence later fails.

The plausibility checks are heuristics (score law and timing bounds). The
digest is stored as-is and is not replayed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dod.config import Settings, get_settings
from dod.db.models import Crown, LeaderboardEntry, Run, RunToken
from dod.db.upsert import dialect_insert
from dod.runs.errors import (
    GameError,
    InvalidOrReusedToken,
    InvalidRequest,
    RateLimited,
    RunVerificationFailed,
    StorageFailure,
)
from dod.runs.schemas import SubmitRunRequest

logger = structlog.get_logger()

# Scores are stored as BIGINT; 2**62 is the largest power of two that fits.
MAX_DOUBLES = 62


@dataclass(frozen=True)
class SubmitResult:
    accepted: bool
    new_best: bool
    crown_stolen: bool
    run_id: int
    score: int


@dataclass(frozen=True)
class LedgerUpdate:
    run_id: int
    new_best: bool
    crown_stolen: bool


# ---------------------------------------------------------------------------
# Steps 2 and 4: pure checks
# ---------------------------------------------------------------------------


def parse_submission(raw: Any, max_digest_bytes: int) -> SubmitRunRequest:
    """Validate the shape of a submission body.

    Raises:
        InvalidRequest: missing fields, non-integer metrics, or an oversized digest.
    """
    if not isinstance(raw, dict):
        raise InvalidRequest()
    try:
        body = SubmitRunRequest.model_validate(raw)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise InvalidRequest(f"Invalid request body: {', '.join(fields)}.") from e

    if len(body.digest.encode("utf-8")) > max_digest_bytes:
        raise InvalidRequest(f"Digest exceeds {max_digest_bytes} bytes.")
    return body


def verify_run_metrics(
    final_score: int,
    doubles: int,
    duration_ms: int,
    *,
    min_action_delta_ms: int,
    max_run_duration_ms: int,
) -> None:
    """Reject metrics no honest client could have produced.

    Raises:
        RunVerificationFailed: on the first violated rule.
    """
    if final_score < 0 or doubles < 0 or duration_ms < 0:
        raise RunVerificationFailed("Invalid metrics.")
    if doubles > MAX_DOUBLES:
        raise RunVerificationFailed("Doubles out of range.")
    if final_score != 2**doubles:
        raise RunVerificationFailed("Score does not match doubles.")
    if duration_ms < doubles * min_action_delta_ms:
        raise RunVerificationFailed("Run completed faster than humanly possible.")
    if duration_ms > max_run_duration_ms:
        raise RunVerificationFailed("Run exceeded the maximum duration.")


# ---------------------------------------------------------------------------
# Step 3: rate limit
# ---------------------------------------------------------------------------


async def count_recent_runs(db: AsyncSession, user_id: str, since: datetime) -> int:
    """Accepted runs by this user created at or after ``since``."""
    result = await db.execute(
        select(func.count()).select_from(Run).where(
            Run.user_id == user_id,
            Run.created_at >= since,
        )
    )
    return int(result.scalar_one())


async def enforce_submit_rate_limit(
    db: AsyncSession, user_id: str, now: datetime, settings: Settings,
) -> None:
    since = now - timedelta(seconds=settings.submit_rate_window_seconds)
    recent = await count_recent_runs(db, user_id, since)
    if recent >= settings.submit_rate_limit:
        raise RateLimited()


# ---------------------------------------------------------------------------
# Step 5: token claim
# ---------------------------------------------------------------------------


async def claim_run_token(db: AsyncSession, token_id: str, user_id: str, now: datetime) -> int:
    """Mark the token used if it is unused, unexpired, and owned by the caller.

    Check and flip happen in a single conditional UPDATE; two concurrent
    claims on one token cannot both match. The claim is committed before
    returning.

    Returns:
        The season id the token is bound to.

    Raises:
        InvalidOrReusedToken: no row matched.
    """
    result = await db.execute(
        update(RunToken)
        .where(
            RunToken.token_id == token_id,
            RunToken.user_id == user_id,
            RunToken.used.is_(False),
            RunToken.expires_at > now,
        )
        .values(used=True, consumed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidOrReusedToken(await _explain_unclaimable(db, token_id, user_id))

    season_id = (
        await db.execute(select(RunToken.season_id).where(RunToken.token_id == token_id))
    ).scalar_one()
    await db.commit()
    return season_id


async def _explain_unclaimable(db: AsyncSession, token_id: str, user_id: str) -> str:
    """Message for a failed claim. Does not affect the outcome."""
    token = (
        await db.execute(select(RunToken).where(RunToken.token_id == token_id))
    ).scalar_one_or_none()
    if token is None or token.user_id != user_id:
        return "Invalid run token."
    if token.used:
        return "Run token already used."
    return "Run token expired."


# ---------------------------------------------------------------------------
# Steps 6-8: persist the run and update the ledger
# ---------------------------------------------------------------------------


async def record_verified_run(
    db: AsyncSession,
    *,
    user_id: str,
    season_id: int,
    score: int,
    doubles: int,
    duration_ms: int,
    digest: str,
    now: datetime,
) -> LedgerUpdate:
    """Write the run, raise the player's best, and take the crown if beaten.

    Runs in the session's current transaction; the caller commits. The upserts
    only write when the new score is strictly greater, so concurrent
    submissions cannot lower a best score or the crown.
    """
    run = Run(
        user_id=user_id,
        season_id=season_id,
        score=score,
        doubles=doubles,
        duration_ms=duration_ms,
        digest=digest,
        is_valid=True,
        created_at=now,
    )
    db.add(run)
    await db.flush()

    board = LeaderboardEntry.__table__
    board_insert = dialect_insert(db, board).values(
        season_id=season_id,
        user_id=user_id,
        best_score=score,
        best_run_id=run.id,
        updated_at=now,
    )
    board_stmt = board_insert.on_conflict_do_update(
        index_elements=[board.c.season_id, board.c.user_id],
        set_={
            "best_score": board_insert.excluded.best_score,
            "best_run_id": board_insert.excluded.best_run_id,
            "updated_at": board_insert.excluded.updated_at,
        },
        where=board.c.best_score < board_insert.excluded.best_score,
    ).returning(board.c.user_id)
    new_best = (await db.execute(board_stmt)).first() is not None

    crown = Crown.__table__
    crown_insert = dialect_insert(db, crown).values(
        season_id=season_id,
        user_id=user_id,
        score=score,
        run_id=run.id,
        updated_at=now,
    )
    crown_stmt = crown_insert.on_conflict_do_update(
        index_elements=[crown.c.season_id],
        set_={
            "user_id": crown_insert.excluded.user_id,
            "score": crown_insert.excluded.score,
            "run_id": crown_insert.excluded.run_id,
            "updated_at": crown_insert.excluded.updated_at,
        },
        where=crown.c.score < crown_insert.excluded.score,
    ).returning(crown.c.user_id)
    crown_stolen = (await db.execute(crown_stmt)).first() is not None

    return LedgerUpdate(run_id=run.id, new_best=new_best, crown_stolen=crown_stolen)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


async def submit_run(
    db: AsyncSession,
    user_id: str,
    raw_body: Any,
    now: datetime | None = None,
) -> SubmitResult:
    """Verify a completed run and record it.

    Raises:
        GameError: the first failing step's error. Nothing is written except a
            token claim that already succeeded.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    try:
        body = parse_submission(raw_body, settings.max_digest_bytes)
        await enforce_submit_rate_limit(db, user_id, now, settings)
        verify_run_metrics(
            body.final_score,
            body.doubles,
            body.duration_ms,
            min_action_delta_ms=settings.min_action_delta_ms,
            max_run_duration_ms=settings.max_run_duration_ms,
        )
        season_id = await claim_run_token(db, body.run_token, user_id, now)

        try:
            ledger = await record_verified_run(
                db,
                user_id=user_id,
                season_id=season_id,
                score=body.final_score,
                doubles=body.doubles,
                duration_ms=body.duration_ms,
                digest=body.digest,
                now=now,
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("run_persist_failed", user_id=user_id, season_id=season_id, error=str(e))
            raise StorageFailure("Failed to write run.") from e
    except GameError as e:
        logger.info("run_rejected", user_id=user_id, error=e.code, detail=e.message)
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("run_verification_storage_error", user_id=user_id, error=str(e))
        raise StorageFailure() from e

    logger.info(
        "run_accepted",
        user_id=user_id,
        season_id=season_id,
        run_id=ledger.run_id,
        score=body.final_score,
        new_best=ledger.new_best,
        crown_stolen=ledger.crown_stolen,
    )
    if ledger.crown_stolen:
        logger.info("crown_stolen", user_id=user_id, season_id=season_id, score=body.final_score)

    return SubmitResult(
        accepted=True,
        new_best=ledger.new_best,
        crown_stolen=ledger.crown_stolen,
        run_id=ledger.run_id,
        score=body.final_score,
    )
