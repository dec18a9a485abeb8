"""Run digest: the client's audit record of one run's timeline.

The server stores the digest verbatim and does not replay it.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from pydantic import BaseModel

from dod.game.engine import Snapshot

DIGEST_VERSION = 1


def _now_ms() -> int:
    return int(time.time() * 1000)


class DigestAction(BaseModel):
    action: str
    delta_ms: int
    value: int
    doubles: int
    phase: str


class DigestPayload(BaseModel):
    v: int = DIGEST_VERSION
    season_id: int | None
    started_at_ms: int
    duration_ms: int
    outcome: str | None
    actions: list[DigestAction]


class RunRecorder:
    """Collects actions from token issuance until the run is submitted."""

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self.clock = clock
        self.season_id: int | None = None
        self.started_at_ms = 0
        self.actions: list[DigestAction] = []

    @property
    def active(self) -> bool:
        return self.started_at_ms > 0

    def begin(self, season_id: int | None) -> None:
        self.season_id = season_id
        self.started_at_ms = self.clock()
        self.actions = []

    def record(self, action: str, snapshot: Snapshot) -> None:
        if not self.active:
            return
        self.actions.append(
            DigestAction(
                action=action,
                delta_ms=self.clock() - self.started_at_ms,
                value=snapshot.value,
                doubles=snapshot.doubles,
                phase=snapshot.phase.value,
            )
        )

    def duration_ms(self) -> int:
        return max(0, self.clock() - self.started_at_ms) if self.active else 0

    def build(self, snapshot: Snapshot) -> DigestPayload:
        return DigestPayload(
            season_id=self.season_id,
            started_at_ms=self.started_at_ms,
            duration_ms=self.duration_ms(),
            outcome=snapshot.outcome.value if snapshot.outcome else None,
            actions=list(self.actions),
        )

    def reset(self) -> None:
        self.season_id = None
        self.started_at_ms = 0
        self.actions = []
