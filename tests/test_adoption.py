from __future__ import annotations

import numpy as np

from rollout_roi.adoption import ADOPTION_CURVES, adoption_series, linear_adoption, s_curve_adoption


def test_linear_adoption_reaches_full_at_ramp_and_holds():
    assert linear_adoption(6, 6) == 1.0
    assert linear_adoption(7, 6) == 1.0
    assert linear_adoption(60, 6) == 1.0
    assert abs(linear_adoption(3, 6) - 0.5) < 1e-12


def test_linear_adoption_is_positive_from_month_one():
    for ramp in (1, 6, 24, 120):
        assert linear_adoption(1, ramp) > 0
    assert abs(linear_adoption(1, 6) - 1 / 6) < 1e-12


def test_zero_ramp_means_instant_full_adoption():
    assert linear_adoption(1, 0) == 1.0
    assert s_curve_adoption(1, 0) == 1.0
    assert s_curve_adoption(1, -3) == 1.0


def test_s_curve_is_half_at_midpoint_and_high_at_ramp_end():
    assert abs(s_curve_adoption(6, 12) - 0.5) < 1e-12
    assert s_curve_adoption(12, 12) > 0.95
    assert s_curve_adoption(1, 12) < 0.1


def test_adoption_series_is_bounded_and_non_decreasing():
    for curve in ADOPTION_CURVES.values():
        series = adoption_series(curve, 36, 8)
        assert len(series) == 36
        assert np.all(series > 0)
        assert np.all(series <= 1.0)
        assert np.all(np.diff(series) >= 0)


def test_adoption_series_empty_for_zero_months():
    assert len(adoption_series(linear_adoption, 0, 6)) == 0
