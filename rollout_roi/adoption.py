"""Adoption curves mapping (month, ramp length) to the realized fraction of gains."""

from __future__ import annotations

import math
from typing import Callable

import numpy as np


AdoptionCurve = Callable[[float, float], float]


def linear_adoption(month: float, ramp_months: float) -> float:
    """Constant-rate ramp reaching 1.0 exactly at ``ramp_months`` and holding there."""
    if ramp_months <= 0:
        return 1.0
    return min(1.0, month / ramp_months)


def s_curve_adoption(month: float, ramp_months: float) -> float:
    """Logistic ramp with its midpoint at half the ramp, ~95% at ``ramp_months``."""
    if ramp_months <= 0:
        return 1.0
    midpoint = ramp_months / 2
    steepness = 6 / ramp_months
    return 1 / (1 + math.exp(-steepness * (month - midpoint)))


ADOPTION_CURVES: dict[str, AdoptionCurve] = {
    "linear": linear_adoption,
    "s_curve": s_curve_adoption,
}


def adoption_series(curve: AdoptionCurve, months: int, ramp_months: float) -> np.ndarray:
    """Return the curve evaluated for months 1..``months``."""
    return np.array([curve(m, ramp_months) for m in range(1, int(months) + 1)], dtype=float)
