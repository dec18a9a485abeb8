"""Concurrent submissions racing for the same run token."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dod.database import get_session_factory
from dod.db.models import Run, Season
from dod.runs.errors import InvalidOrReusedToken
from dod.runs.token_service import issue_run_token
from dod.runs.verification import SubmitResult, submit_run
from tests.conftest import run_payload


async def _submit_in_own_session(user_id: str, body: dict) -> SubmitResult | InvalidOrReusedToken:
    async with get_session_factory()() as session:
        try:
            return await submit_run(session, user_id, body)
        except InvalidOrReusedToken as e:
            return e


class TestTokenClaimRace:
    async def test_exactly_one_claim_wins(
        self, db_session: AsyncSession, active_season: Season,
    ) -> None:
        issued = await issue_run_token(db_session, "u1")
        body = run_payload(issued.run_token, 3)

        results = await asyncio.gather(
            _submit_in_own_session("u1", body),
            _submit_in_own_session("u1", body),
        )

        accepted = [r for r in results if isinstance(r, SubmitResult)]
        rejected = [r for r in results if isinstance(r, InvalidOrReusedToken)]
        assert len(accepted) == 1
        assert len(rejected) == 1
        assert rejected[0].code == "invalid_or_reused_token"

        count = (await db_session.execute(select(func.count()).select_from(Run))).scalar_one()
        assert count == 1

    @pytest.mark.parametrize("attempts", [4])
    async def test_many_racers(
        self, db_session: AsyncSession, active_season: Season, attempts: int,
    ) -> None:
        issued = await issue_run_token(db_session, "u1")
        body = run_payload(issued.run_token, 1)

        results = await asyncio.gather(*(_submit_in_own_session("u1", body) for _ in range(attempts)))
        assert sum(isinstance(r, SubmitResult) for r in results) == 1
