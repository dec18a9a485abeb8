"""Client game loop wiring: engine, run token, digest, submission, leaderboard.

A signed-in player gets a run token when a run starts. Cashing out submits
the run with its digest; crashing discards the token. Any rejection is final
for that run and the player just sees a local, unverified result.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from dod.client.api import ApiError, DoubleOrDieApi
from dod.client.auth import AuthProvider, NullAuthProvider
from dod.client.cache import LeaderboardCache
from dod.client.state import (
    AppState,
    Store,
    game_changed,
    leaderboard_failed,
    leaderboard_loaded,
    notice,
    run_submitted,
    signed_in,
)
from dod.game.digest import RunRecorder
from dod.game.engine import GameEngine, Outcome, Phase, Snapshot

logger = structlog.get_logger()

# Next-double crash chance at which the player is warned.
HIGH_RISK_WARNING = 0.7


class GameSession:
    def __init__(
        self,
        api: DoubleOrDieApi,
        auth: AuthProvider | None = None,
        engine: GameEngine | None = None,
        store: Store | None = None,
        cache: LeaderboardCache | None = None,
        recorder: RunRecorder | None = None,
    ) -> None:
        self.api = api
        self.auth = auth or NullAuthProvider()
        self.engine = engine or GameEngine()
        self.store = store or Store()
        self.cache = cache or LeaderboardCache()
        self.recorder = recorder or RunRecorder()
        self._run_token: str | None = None

    @property
    def state(self) -> AppState:
        return self.store.state

    @property
    def verified(self) -> bool:
        """Whether the current run holds a run token."""
        return self._run_token is not None

    async def sync_auth(self) -> None:
        session = await self.auth.get_session()
        self.api.access_token = session.access_token if session else None
        self.store.apply(signed_in, session.user_id if session else None)
        await self.load_leaderboard(force=True)

    def _discard_verification(self) -> None:
        self._run_token = None
        self.recorder.reset()

    async def _ensure_run_token(self) -> None:
        if self.state.user_id is None or self._run_token is not None:
            return
        try:
            issued = await self.api.start_run()
        except ApiError as e:
            logger.warning("run_token_unavailable", code=e.code)
            self.store.apply(notice, f"Unable to verify run: {e.detail}")
            return
        self._run_token = issued["run_token"]
        self.recorder.begin(issued.get("season_id"))

    async def start(self) -> Snapshot:
        if self.engine.phase not in (Phase.IDLE, Phase.SUMMARY):
            return self.engine.snapshot()
        self._discard_verification()
        await self._ensure_run_token()
        snapshot = self.engine.start_run()
        self.recorder.record("start", snapshot)
        self.store.apply(game_changed, snapshot)
        return snapshot

    async def double(self) -> Snapshot:
        before = self.engine.phase
        snapshot = self.engine.double_down()
        if before == Phase.RUNNING:
            self.recorder.record("double", snapshot)
        if snapshot.outcome == Outcome.CRASHED:
            self._discard_verification()
            self.store.apply(notice, "Crash! Run ended with no banked multiplier.")
        elif snapshot.phase == Phase.RUNNING and snapshot.next_crash_chance >= HIGH_RISK_WARNING:
            self.store.apply(
                notice,
                f"High risk: {round(snapshot.next_crash_chance * 100)}% crash chance next DOUBLE.",
            )
        self.store.apply(game_changed, snapshot)
        return snapshot

    async def cash_out(self) -> Snapshot:
        before = self.engine.phase
        snapshot = self.engine.cash_out()
        self.store.apply(game_changed, snapshot)
        if before == Phase.RUNNING and snapshot.outcome == Outcome.CASHED_OUT:
            self.recorder.record("cash_out", snapshot)
            await self.submit(snapshot)
        return snapshot

    async def submit(self, snapshot: Snapshot) -> dict[str, Any] | None:
        """Submit a cashed-out run. Returns the server result, or None if unverified."""
        if self._run_token is None or not self.recorder.active:
            self._discard_verification()
            return None

        digest = self.recorder.build(snapshot)
        payload = {
            "run_token": self._run_token,
            "final_score": snapshot.value,
            "doubles": snapshot.doubles,
            "duration_ms": digest.duration_ms,
            "digest": digest.model_dump_json(),
        }
        self._discard_verification()

        try:
            result = await self.api.submit_run(payload)
        except ApiError as e:
            logger.warning("run_submission_rejected", code=e.code, detail=e.detail)
            self.store.apply(notice, f"Run verification failed: {e.detail}")
            return None

        self.store.apply(run_submitted, result)
        if result.get("crown_stolen"):
            self.store.apply(notice, f"You took the crown at x{snapshot.value}!")
        await self.load_leaderboard(force=True)
        return result

    async def _fetch_leaderboard(self) -> dict[str, Any]:
        season, board, rank = await asyncio.gather(
            self.api.get_active_season(),
            self.api.get_leaderboard(),
            self.api.get_my_rank(),
        )
        return {"season": season, "board": board, "player_rank": rank}

    async def load_leaderboard(self, *, force: bool = False) -> None:
        try:
            data = await self.cache.get(self.state.user_id, self._fetch_leaderboard, force=force)
        except ApiError as e:
            self.store.apply(leaderboard_failed, e.detail)
            return
        self.store.apply(leaderboard_loaded, data["season"], data["board"], data["player_rank"])
