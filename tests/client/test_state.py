"""Client state store tests."""

from __future__ import annotations

from dod.client.state import (
    AppState,
    Store,
    leaderboard_failed,
    leaderboard_loaded,
    notice,
    signed_in,
)


class TestStore:
    def test_notifies_on_change(self) -> None:
        store = Store()
        seen: list[tuple[AppState, AppState]] = []
        store.subscribe(lambda prev, new: seen.append((prev, new)))

        store.apply(signed_in, "u1")
        assert len(seen) == 1
        assert seen[0][0].user_id is None
        assert seen[0][1].user_id == "u1"

    def test_no_notification_without_change(self) -> None:
        store = Store(AppState(user_id="u1"))
        calls: list[AppState] = []
        store.subscribe(lambda _prev, new: calls.append(new))
        store.apply(signed_in, "u1")
        assert calls == []

    def test_unsubscribe(self) -> None:
        store = Store()
        calls: list[AppState] = []
        unsubscribe = store.subscribe(lambda _prev, new: calls.append(new))
        unsubscribe()
        unsubscribe()
        store.apply(notice, "hello")
        assert calls == []
        assert store.state.notices == ("hello",)


class TestUpdates:
    def test_leaderboard_marks_current_player(self) -> None:
        state = AppState(user_id="u2")
        payload = {
            "leaderboard": [{"user_id": "u1", "rank": 1}, {"user_id": "u2", "rank": 2}],
            "crown": {"user_id": "u1", "score": 64},
        }
        view = leaderboard_loaded(state, {"id": 1}, payload, {"rank": 2, "score": 32}).leaderboard
        assert [row["is_current_player"] for row in view.entries] == [False, True]
        assert view.crown["user_id"] == "u1"
        assert view.player_rank == {"rank": 2, "score": 32}
        assert view.error is None

    def test_anonymous_never_current_player(self) -> None:
        payload = {"leaderboard": [{"user_id": "u1", "rank": 1}], "crown": None}
        view = leaderboard_loaded(AppState(), None, payload, None).leaderboard
        assert view.entries[0]["is_current_player"] is False

    def test_leaderboard_failed(self) -> None:
        view = leaderboard_failed(AppState(), "offline").leaderboard
        assert view.error == "offline"
        assert view.entries == []
