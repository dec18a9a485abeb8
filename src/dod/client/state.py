"""Client application state.

State is an immutable value. Pure update functions take a state and return
the next one; ``Store`` applies them and notifies subscribers on change.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from dod.game.engine import Snapshot


@dataclass(frozen=True)
class LeaderboardView:
    season: dict[str, Any] | None
    entries: list[dict[str, Any]]
    crown: dict[str, Any] | None
    player_rank: dict[str, Any] | None
    error: str | None = None


@dataclass(frozen=True)
class AppState:
    user_id: str | None = None
    snapshot: Snapshot | None = None
    leaderboard: LeaderboardView | None = None
    last_result: dict[str, Any] | None = None
    notices: tuple[str, ...] = field(default_factory=tuple)


def signed_in(state: AppState, user_id: str | None) -> AppState:
    return replace(state, user_id=user_id)


def game_changed(state: AppState, snapshot: Snapshot) -> AppState:
    return replace(state, snapshot=snapshot)


def run_submitted(state: AppState, result: dict[str, Any]) -> AppState:
    return replace(state, last_result=result)


def notice(state: AppState, message: str) -> AppState:
    return replace(state, notices=(*state.notices, message))


def leaderboard_loaded(
    state: AppState,
    season: dict[str, Any] | None,
    payload: dict[str, Any],
    player_rank: dict[str, Any] | None,
) -> AppState:
    entries = [
        {**row, "is_current_player": state.user_id is not None and row["user_id"] == state.user_id}
        for row in payload.get("leaderboard", [])
    ]
    view = LeaderboardView(
        season=season,
        entries=entries,
        crown=payload.get("crown"),
        player_rank=player_rank,
    )
    return replace(state, leaderboard=view)


def leaderboard_failed(state: AppState, message: str) -> AppState:
    return replace(state, leaderboard=LeaderboardView(None, [], None, None, error=message))


Listener = Callable[[AppState, AppState], None]


class Store:
    """Holds the current AppState and fans out transitions to listeners."""

    def __init__(self, state: AppState | None = None) -> None:
        self.state = state or AppState()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply(self, update: Callable[..., AppState], *args: Any) -> AppState:
        previous = self.state
        self.state = update(previous, *args)
        if self.state != previous:
            for listener in list(self._listeners):
                listener(previous, self.state)
        return self.state
