"""Crash risk curve for the doubling game.

Risk follows a logistic curve centred on ``risk_midpoint``: low for the
first few doubles, climbing steeply around the midpoint, then flattening
towards ``risk_cap``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Tuning:
    """Game tuning knobs shared by the client engine and the server checks."""

    start_value: int = 1
    risk_base: float = 0.08
    risk_growth_rate: float = 0.34
    risk_midpoint: float = 4
    risk_cap: float = 0.92


DEFAULT_TUNING = Tuning()


def risk_for_step(step_index: int, tuning: Tuning = DEFAULT_TUNING) -> float:
    """Crash probability for the ``step_index``-th double.

    Always within ``[risk_base, risk_cap]`` and non-decreasing in
    ``step_index``.
    """
    logistic = 1 / (1 + math.exp(-tuning.risk_growth_rate * (step_index - tuning.risk_midpoint)))
    risk = tuning.risk_base + (tuning.risk_cap - tuning.risk_base) * logistic
    return min(tuning.risk_cap, max(tuning.risk_base, risk))
