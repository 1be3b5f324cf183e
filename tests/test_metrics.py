from __future__ import annotations

from dataclasses import replace

import pytest

from rollout_roi.metrics import break_even_label, compute_metrics, savings_by_year, scenario_comparison_frame
from rollout_roi.model import compute_scenario, compute_scenarios
from rollout_roi.records import DirectRate, QualitativeFlags


def test_metrics_mirror_results(costed_scenario):
    results = compute_scenario(costed_scenario, 36)
    metrics = compute_metrics(results)

    assert metrics["break_even_month"] == results.break_even_month
    assert metrics["break_even_label"] == f"M{results.break_even_month}"
    assert metrics["net_savings"] == results.three_year_net_savings
    assert metrics["total_investment"] == results.total_investment
    assert metrics["cumulative_savings"] == results.final_month.cumulative_savings
    assert metrics["analysis_period"] == 36
    assert metrics["qualitative_labels"] == []


def test_break_even_label_when_not_reached(scenario_factory):
    results = compute_scenario(scenario_factory(DirectRate(1.0), reference_units=1, assembly_cost=50_000.0), 24)
    assert break_even_label(results) == "Not within 24 months"


def test_metrics_for_empty_horizon(costed_scenario):
    metrics = compute_metrics(compute_scenario(costed_scenario, 0))
    assert metrics["cumulative_savings"] == 0.0
    assert metrics["break_even_month"] is None


def test_comparison_frame_one_row_per_scenario(direct_scenario, costed_scenario):
    flagged = replace(costed_scenario, qualitative=QualitativeFlags(safety_critical=True, operations_critical=True))
    frame = scenario_comparison_frame(compute_scenarios([direct_scenario, flagged], 36))
    assert frame["Scenario"].tolist() == [direct_scenario.name, flagged.name]
    assert frame.loc[1, "Flags"] == "Safety Critical, Operations Critical"
    assert frame.loc[0, "Monthly Savings (Full Adoption)"] == 50_000.0


def test_savings_by_year_sums_months(costed_scenario):
    results = compute_scenario(costed_scenario, 30)
    by_year = savings_by_year(results)

    assert by_year["Year"].tolist() == [1, 2, 3]
    rows = results.monthly_breakdowns
    assert by_year.loc[0, "Monthly Savings"] == pytest.approx(sum(r.monthly_savings for r in rows[:12]))
    assert by_year.loc[2, "Monthly Investment Cost"] == pytest.approx(sum(r.monthly_investment_cost for r in rows[24:]))
    assert by_year.loc[2, "Net Position"] == rows[-1].net_position


def test_savings_by_year_empty(costed_scenario):
    assert savings_by_year(compute_scenario(costed_scenario, 0)).empty
