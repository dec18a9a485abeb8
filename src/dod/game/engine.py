"""Client-side run state machine.

State progression: IDLE -> RUNNING -> (CRASHED | CASHED_OUT) -> SUMMARY
A terminal state is finished into SUMMARY immediately, so callers only ever
observe IDLE, RUNNING, or SUMMARY in a returned snapshot. Actions that do not
apply to the current phase are no-ops that return the current snapshot.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from dod.game.risk import DEFAULT_TUNING, Tuning, risk_for_step


class Phase(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    CRASHED = "CRASHED"
    CASHED_OUT = "CASHED_OUT"
    SUMMARY = "SUMMARY"


class Outcome(str, Enum):
    CRASHED = "crashed"
    CASHED_OUT = "cashed_out"


@dataclass(frozen=True)
class Snapshot:
    phase: Phase
    value: int
    doubles: int
    outcome: Outcome | None
    message: str
    next_crash_chance: float
    risk_cap: float


class GameEngine:
    """One player's game session. Not thread-safe; driven from UI events."""

    def __init__(self, rng: Callable[[], float] = random.random, tuning: Tuning = DEFAULT_TUNING) -> None:
        self.rng = rng
        self.tuning = tuning
        self._reset()

    def _reset(self) -> None:
        self.phase = Phase.IDLE
        self.value = self.tuning.start_value
        self.doubles = 0
        self.outcome: Outcome | None = None
        self.message = "Press START to begin a run."

    def reset_to_idle(self) -> Snapshot:
        self._reset()
        return self.snapshot()

    def start_run(self) -> Snapshot:
        """IDLE or SUMMARY -> RUNNING with a fresh multiplier."""
        if self.phase not in (Phase.IDLE, Phase.SUMMARY):
            return self.snapshot()

        self.phase = Phase.RUNNING
        self.value = self.tuning.start_value
        self.doubles = 0
        self.outcome = None
        self.message = "Run started. Risk climbs with every DOUBLE."
        return self.snapshot()

    def double_down(self) -> Snapshot:
        """Risk the current multiplier for twice the value."""
        if self.phase != Phase.RUNNING:
            return self.snapshot()

        next_step = self.doubles + 1
        crash_chance = risk_for_step(next_step, self.tuning)

        if self.rng() < crash_chance:
            self.phase = Phase.CRASHED
            self.outcome = Outcome.CRASHED
            self.message = f"Crashed at x{self.value}."
            return self.finish_run()

        self.doubles = next_step
        self.value *= 2
        self.message = f"Safe! Multiplied to x{self.value}."
        return self.snapshot()

    def cash_out(self) -> Snapshot:
        """Bank the current multiplier and end the run."""
        if self.phase != Phase.RUNNING:
            return self.snapshot()

        self.phase = Phase.CASHED_OUT
        self.outcome = Outcome.CASHED_OUT
        self.message = f"Cashed out at x{self.value}."
        return self.finish_run()

    def finish_run(self) -> Snapshot:
        if self.phase not in (Phase.CRASHED, Phase.CASHED_OUT):
            return self.snapshot()

        self.phase = Phase.SUMMARY
        return self.snapshot()

    def snapshot(self) -> Snapshot:
        next_crash_chance = (
            risk_for_step(self.doubles + 1, self.tuning) if self.phase == Phase.RUNNING else 0.0
        )
        return Snapshot(
            phase=self.phase,
            value=self.value,
            doubles=self.doubles,
            outcome=self.outcome,
            message=self.message,
            next_crash_chance=next_crash_chance,
            risk_cap=self.tuning.risk_cap,
        )
