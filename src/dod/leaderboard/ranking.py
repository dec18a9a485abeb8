"""Deterministic season ranking.

Players are ranked by best_score DESC, then by updated_at ASC: at equal
scores, whoever reached the score first ranks higher. user_id is a final
tiebreaker so the order is total.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


def sort_key(entry: dict[str, Any]) -> tuple[int, datetime, str]:
    return (-entry["best_score"], entry["updated_at"], str(entry["user_id"]))


def rank_entries(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort entries into leaderboard order and number them from 1.

    Input: dicts with at least ``user_id``, ``best_score``, ``updated_at``.
    Output: the same dicts, sorted, each with ``rank`` set.
    """
    ranked = sorted(entries, key=sort_key)
    for idx, entry in enumerate(ranked):
        entry["rank"] = idx + 1
    return ranked


def player_rank(strictly_greater: int, equal_and_earlier: int) -> int:
    """1 + players with a higher score + players who reached an equal score earlier."""
    return 1 + strictly_greater + equal_and_earlier
