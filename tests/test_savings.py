from __future__ import annotations

from rollout_roi.records import CrewTimeComparison, DirectRate, SavingsInputs
from rollout_roi.savings import compute_savings_per_unit, labor_cost_per_unit, labor_savings_per_unit


def test_direct_rate_adds_additional_savings():
    savings = SavingsInputs(basis=DirectRate(120.0), additional_savings_per_unit=15.0)
    assert compute_savings_per_unit(savings) == 135.0


def test_time_based_rate_prices_crew_minutes_at_hourly_rate():
    basis = CrewTimeComparison(
        current_crew_size=2, proposed_crew_size=1, current_time_per_unit=30, proposed_time_per_unit=20, hourly_rate=40
    )
    # 2 * 30/60 * 40 = 40 today, 1 * 20/60 * 40 = 13.33 proposed.
    assert abs(labor_cost_per_unit(2, 30, 40) - 40.0) < 1e-12
    assert abs(labor_savings_per_unit(basis) - (40.0 - 40.0 / 3)) < 1e-9
    savings = SavingsInputs(basis=basis, additional_savings_per_unit=1.5)
    assert abs(compute_savings_per_unit(savings) - (40.0 - 40.0 / 3 + 1.5)) < 1e-9


def test_rate_is_clamped_at_zero_when_proposal_costs_more():
    basis = CrewTimeComparison(
        current_crew_size=1, proposed_crew_size=3, current_time_per_unit=10, proposed_time_per_unit=10, hourly_rate=50
    )
    assert labor_savings_per_unit(basis) < 0
    assert compute_savings_per_unit(SavingsInputs(basis=basis)) == 0.0
    assert compute_savings_per_unit(SavingsInputs(basis=basis, additional_savings_per_unit=5.0)) == 0.0


def test_zero_current_time_yields_no_labor_savings():
    basis = CrewTimeComparison(
        current_crew_size=2, proposed_crew_size=0, current_time_per_unit=0, proposed_time_per_unit=0, hourly_rate=50
    )
    assert labor_savings_per_unit(basis) == 0.0
    assert compute_savings_per_unit(SavingsInputs(basis=basis, additional_savings_per_unit=7.0)) == 7.0
