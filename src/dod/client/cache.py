"""Client-side leaderboard cache keyed by the signed-in identity."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

from dod.config import get_settings


class LeaderboardCache:
    """Holds the last leaderboard payload for a fixed freshness window.

    A cached payload is reused only for the same identity (None for
    anonymous) and only while fresh. ``force`` always refetches; the game
    forces a refresh after every verified submission.
    """

    def __init__(
        self,
        max_age_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_age_seconds is None:
            max_age_seconds = get_settings().client_leaderboard_cache_seconds
        self.max_age_seconds = max_age_seconds
        self.clock = clock
        self._loaded_at: float | None = None
        self._user_id: str | None = None
        self._payload: dict[str, Any] | None = None

    def is_fresh(self, user_id: str | None) -> bool:
        return (
            self._payload is not None
            and self._loaded_at is not None
            and self._user_id == user_id
            and self.clock() - self._loaded_at < self.max_age_seconds
        )

    async def get(
        self,
        user_id: str | None,
        loader: Callable[[], Awaitable[dict[str, Any]]],
        *,
        force: bool = False,
    ) -> dict[str, Any]:
        if not force and self.is_fresh(user_id):
            return self._payload  # type: ignore[return-value]
        payload = await loader()
        self._payload = payload
        self._user_id = user_id
        self._loaded_at = self.clock()
        return payload

    def clear(self) -> None:
        self._loaded_at = None
        self._user_id = None
        self._payload = None
