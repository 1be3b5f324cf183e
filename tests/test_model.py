from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from rollout_roi.adoption import s_curve_adoption
from rollout_roi.model import FRAME_COLUMNS, compute_scenario, compute_scenarios, redeployment_months, results_frame
from rollout_roi.records import DirectRate


def test_breakdown_length_and_month_numbering(costed_scenario):
    for period in (1, 6, 12, 36, 60):
        results = compute_scenario(costed_scenario, period)
        assert len(results.monthly_breakdowns) == period
        assert [m.month for m in results.monthly_breakdowns] == list(range(1, period + 1))


def test_zero_period_produces_empty_series_and_zero_kpis(costed_scenario):
    results = compute_scenario(costed_scenario, 0)
    assert results.monthly_breakdowns == ()
    assert results.break_even_month is None
    assert results.year1_roi == 0.0
    assert results.total_investment == 0.0
    assert results.three_year_net_savings == 0.0


def test_cumulative_series_are_non_decreasing(costed_scenario, time_based_scenario):
    for scenario in (costed_scenario, time_based_scenario):
        rows = compute_scenario(scenario, 60).monthly_breakdowns
        savings = np.array([r.cumulative_savings for r in rows])
        investment = np.array([r.cumulative_investment for r in rows])
        assert np.all(np.diff(savings) >= 0)
        assert np.all(np.diff(investment) >= 0)


def test_break_even_is_first_strictly_positive_month(costed_scenario, time_based_scenario):
    for scenario in (costed_scenario, time_based_scenario):
        results = compute_scenario(scenario, 60)
        assert results.break_even_month is not None
        rows = results.monthly_breakdowns
        assert rows[results.break_even_month - 1].net_position > 0
        assert all(r.net_position <= 0 for r in rows[: results.break_even_month - 1])


def test_break_even_none_when_investment_never_recovered(scenario_factory):
    scenario = scenario_factory(DirectRate(1.0), reference_units=1, assembly_cost=1_000_000.0)
    results = compute_scenario(scenario, 36)
    assert results.break_even_month is None
    assert results.three_year_net_savings < 0


def test_exact_tie_does_not_count_as_break_even(scenario_factory):
    # 100/month from month 1 against a 300 upfront cost: net is exactly 0 in month 3.
    scenario = scenario_factory(DirectRate(100.0), reference_units=1, ramp=0, assembly_cost=300.0)
    results = compute_scenario(scenario, 6)
    assert results.monthly_breakdowns[2].net_position == 0.0
    assert results.break_even_month == 4


def test_direct_500_per_unit_reference_scenario(direct_scenario):
    results = compute_scenario(direct_scenario, 36)
    assert results.monthly_savings_at_full_adoption == 50_000.0
    month6 = results.monthly_breakdowns[5]
    assert month6.adoption_rate == 1.0
    assert month6.monthly_savings == 50_000.0
    assert results.break_even_month == 1
    assert results.total_investment == 0.0
    assert results.year1_roi == 0.0


def test_redeployment_charged_every_lifespan_after_month_one(scenario_factory):
    scenario = scenario_factory(
        DirectRate(10.0), assembly_cost=1_000.0, deployment_cost=500.0, tool_lifespan_months=12
    )
    results = compute_scenario(scenario, 48)
    charged = [r.month for r in results.monthly_breakdowns if r.monthly_investment_cost > 0]
    assert charged == [13, 25, 37]
    assert all(results.monthly_breakdowns[m - 1].monthly_investment_cost == 1_500.0 for m in charged)
    assert results.monthly_breakdowns[0].monthly_investment_cost == 0.0
    assert redeployment_months(scenario.investment, 48) == [13, 25, 37]


def test_zero_lifespan_disables_redeployment(costed_scenario):
    scenario = replace(costed_scenario, investment=replace(costed_scenario.investment, tool_lifespan_months=0))
    results = compute_scenario(scenario, 60)
    assert all(r.monthly_investment_cost == scenario.investment.monthly_recurring_cost for r in results.monthly_breakdowns)


def test_investment_seeded_with_one_time_costs(costed_scenario):
    results = compute_scenario(costed_scenario, 12)
    inv = costed_scenario.investment
    first = results.monthly_breakdowns[0]
    one_time = 12_000.0 + 3_000.0 + 2_500.0 + 1_200.0 + 800.0
    assert abs(first.cumulative_investment - (one_time + inv.monthly_recurring_cost)) < 1e-9


def test_year1_roi_uses_month_twelve(costed_scenario):
    results = compute_scenario(costed_scenario, 36)
    m12 = results.monthly_breakdowns[11]
    assert abs(results.year1_roi - m12.net_position / m12.cumulative_investment * 100) < 1e-9


def test_year1_roi_short_horizon_uses_last_month(costed_scenario):
    results = compute_scenario(costed_scenario, 6)
    last = results.monthly_breakdowns[-1]
    assert abs(results.year1_roi - last.net_position / last.cumulative_investment * 100) < 1e-9


def test_zero_reference_units_floored_to_one(scenario_factory):
    zero = compute_scenario(scenario_factory(DirectRate(25.0), reference_units=0), 12)
    one = compute_scenario(scenario_factory(DirectRate(25.0), reference_units=1), 12)
    assert zero.monthly_savings_at_full_adoption == 25.0
    assert [r.monthly_savings for r in zero.monthly_breakdowns] == [r.monthly_savings for r in one.monthly_breakdowns]


def test_utilization_scales_savings(direct_scenario):
    half = replace(direct_scenario, savings=replace(direct_scenario.savings, utilization_percent=0.5))
    full_results = compute_scenario(direct_scenario, 24)
    half_results = compute_scenario(half, 24)
    assert half_results.monthly_savings_at_full_adoption == 25_000.0
    for a, b in zip(full_results.monthly_breakdowns, half_results.monthly_breakdowns):
        assert b.monthly_savings == pytest.approx(a.monthly_savings / 2)


def test_compute_scenario_is_idempotent(time_based_scenario):
    first = compute_scenario(time_based_scenario, 48)
    second = compute_scenario(time_based_scenario, 48)
    assert first == second


def test_alternate_adoption_curve_changes_ramp_only(costed_scenario):
    linear = compute_scenario(costed_scenario, 36)
    logistic = compute_scenario(costed_scenario, 36, adoption_curve=s_curve_adoption)
    assert logistic.monthly_savings_at_full_adoption == linear.monthly_savings_at_full_adoption
    assert logistic.total_investment == linear.total_investment
    assert logistic.monthly_breakdowns[0].monthly_savings != linear.monthly_breakdowns[0].monthly_savings


def test_results_frame_matches_breakdowns(costed_scenario):
    results = compute_scenario(costed_scenario, 30)
    df = results_frame(results)
    assert list(df.columns) == FRAME_COLUMNS
    assert len(df) == 30
    assert df["Year"].tolist()[:13] == [1] * 12 + [2]
    assert float(df["Net Position"].iloc[-1]) == results.three_year_net_savings


def test_compute_scenarios_preserves_order(costed_scenario, time_based_scenario):
    results = compute_scenarios([time_based_scenario, costed_scenario], 12)
    assert [r.scenario_name for r in results] == [time_based_scenario.name, costed_scenario.name]
