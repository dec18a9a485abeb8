"""End-to-end: the client game loop against the real API."""

from __future__ import annotations

import httpx
import pytest
from httpx import AsyncClient

from dod.auth.jwt import create_access_token
from dod.client import AuthSession, DoubleOrDieApi, GameSession, StaticAuthProvider
from dod.client.api import ApiError
from dod.client.cache import LeaderboardCache
from dod.db.models import Season
from dod.game.digest import RunRecorder
from dod.game.engine import GameEngine, Outcome, Phase


class SteppingClock:
    """Advances a fixed amount on every read."""

    def __init__(self, step_ms: int = 500) -> None:
        self.now = 1_700_000_000_000
        self.step_ms = step_ms

    def __call__(self) -> int:
        self.now += self.step_ms
        return self.now


def _session(client: AsyncClient, user_id: str | None, rng: float) -> GameSession:
    auth = (
        StaticAuthProvider(AuthSession(user_id=user_id, access_token=create_access_token(user_id)))
        if user_id
        else None
    )
    return GameSession(
        api=DoubleOrDieApi(client),
        auth=auth,
        engine=GameEngine(rng=lambda: rng),
        cache=LeaderboardCache(max_age_seconds=45),
        recorder=RunRecorder(clock=SteppingClock()),
    )


class TestGameSession:
    async def test_verified_run(self, client: AsyncClient, active_season: Season) -> None:
        session = _session(client, "player-1", rng=0.999)
        await session.sync_auth()
        assert session.state.user_id == "player-1"

        await session.start()
        assert session.verified
        for _ in range(3):
            await session.double()
        snap = await session.cash_out()

        assert snap.phase == Phase.SUMMARY
        assert snap.value == 8
        result = session.state.last_result
        assert result["accepted"] is True
        assert result["score"] == 8
        assert result["new_best"] is True
        assert result["crown_stolen"] is True
        assert not session.verified

        board = session.state.leaderboard
        assert board.error is None
        assert board.season["id"] == active_season.id
        assert board.entries[0]["user_id"] == "player-1"
        assert board.entries[0]["is_current_player"] is True
        assert board.crown["score"] == 8
        assert board.player_rank == {"rank": 1, "score": 8}
        assert any("crown" in n for n in session.state.notices)

    async def test_crash_discards_token(self, client: AsyncClient, active_season: Season) -> None:
        session = _session(client, "player-1", rng=0.0)
        await session.sync_auth()
        await session.start()
        snap = await session.double()

        assert snap.outcome == Outcome.CRASHED
        assert not session.verified
        assert session.state.last_result is None
        assert (await client.get("/api/v1/leaderboard")).json()["leaderboard"] == []

    async def test_anonymous_play_is_unverified(self, client: AsyncClient, active_season: Season) -> None:
        session = _session(client, None, rng=0.999)
        await session.sync_auth()
        await session.start()
        assert not session.verified
        await session.double()
        snap = await session.cash_out()

        assert snap.value == 2
        assert session.state.last_result is None
        assert session.state.leaderboard.player_rank is None

    async def test_no_season_plays_unverified(self, client: AsyncClient) -> None:
        session = _session(client, "player-1", rng=0.999)
        await session.sync_auth()
        snap = await session.start()

        assert snap.phase == Phase.RUNNING
        assert not session.verified
        assert any("Unable to verify run" in n for n in session.state.notices)

    async def test_double_before_start_is_noop(self, client: AsyncClient, active_season: Season) -> None:
        session = _session(client, "player-1", rng=0.999)
        snap = await session.double()
        assert snap.phase == Phase.IDLE
        assert snap.value == 1

    async def test_high_risk_notice(self, client: AsyncClient) -> None:
        session = _session(client, None, rng=0.999)
        await session.start()
        for _ in range(6):
            await session.double()
        assert not any("High risk" in n for n in session.state.notices)

        snap = await session.double()
        assert snap.phase == Phase.RUNNING
        assert snap.next_crash_chance >= 0.7
        assert any("High risk" in n and "crash chance" in n for n in session.state.notices)


def _unreachable_api() -> AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    return AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")


class TestNetworkFailures:
    async def test_request_raises_api_error(self) -> None:
        async with _unreachable_api() as http:
            with pytest.raises(ApiError) as exc_info:
                await DoubleOrDieApi(http).get_leaderboard()
        assert exc_info.value.status_code == 0
        assert exc_info.value.code == "network_error"
        assert "network down" in exc_info.value.detail

    async def test_sign_in_records_leaderboard_error(self) -> None:
        async with _unreachable_api() as http:
            session = _session(http, "player-1", rng=0.999)
            await session.sync_auth()
        assert session.state.user_id == "player-1"
        assert "network down" in session.state.leaderboard.error

    async def test_start_falls_back_to_unverified(self) -> None:
        async with _unreachable_api() as http:
            session = _session(http, "player-1", rng=0.999)
            await session.sync_auth()
            snap = await session.start()
        assert snap.phase == Phase.RUNNING
        assert not session.verified
        assert any("Unable to verify run" in n for n in session.state.notices)

    async def test_submit_failure_keeps_local_result(
        self, client: AsyncClient, active_season: Season,
    ) -> None:
        session = _session(client, "player-1", rng=0.999)
        await session.sync_auth()
        await session.start()
        assert session.verified
        await session.double()

        async with _unreachable_api() as http:
            session.api.http = http
            snap = await session.cash_out()

        assert snap.phase == Phase.SUMMARY
        assert snap.value == 2
        assert session.state.last_result is None
        assert not session.verified
        assert any("Run verification failed" in n for n in session.state.notices)
