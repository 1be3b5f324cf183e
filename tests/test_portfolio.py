from __future__ import annotations

import pytest

from rollout_roi.calendar_utils import months_between
from rollout_roi.model import compute_scenario
from rollout_roi.portfolio import (
    add_entry,
    build_timelines,
    compute_portfolio,
    create_entry,
    entry_duration,
    entry_investment,
    load_portfolio,
    overtime_premium,
    remove_entry,
    reset_portfolio,
    scale_entry,
    set_department_salary,
    set_portfolio_name,
    update_entry,
)
from rollout_roi.records import PortfolioState
from rollout_roi.scenarios import counter_id_factory


def test_matching_volume_reproduces_unscaled_savings(costed_scenario, entry_factory):
    er = scale_entry(entry_factory(costed_scenario))
    base = compute_scenario(costed_scenario, 36)
    assert er.scale_factor == 1.0
    assert er.scaled_savings == base.final_month.cumulative_savings
    assert er.scaled_investment == base.final_month.cumulative_investment
    assert er.scaled_value == er.scaled_savings - er.scaled_investment
    assert not er.has_overtime


def test_scale_factor_is_actual_over_reference(costed_scenario, entry_factory):
    er = scale_entry(entry_factory(costed_scenario, actual_units=125))
    assert er.scale_factor == pytest.approx(2.5)
    assert er.scaled_savings == pytest.approx(er.base_cumulative_savings * 2.5)


def test_investment_is_not_scaled_by_volume(costed_scenario, entry_factory):
    small = scale_entry(entry_factory(costed_scenario, actual_units=10))
    large = scale_entry(entry_factory(costed_scenario, actual_units=1_000))
    assert small.scaled_investment == large.scaled_investment


def test_tool_count_multiplies_per_tool_costs_only(costed_scenario, entry_factory):
    inv = entry_investment(entry_factory(costed_scenario, tool_count=3, exclude_training=True))
    assert inv.assembly_cost == 36_000.0
    assert inv.design_cost == 3_000.0
    assert inv.controls_cost == 2_500.0
    assert inv.training_cost == 0.0
    assert inv.deployment_cost == 2_400.0
    assert inv.monthly_recurring_cost == 450.0
    assert inv.tool_lifespan_months == 18


def test_exclude_design_controls_zeroes_engineering_costs(costed_scenario, entry_factory):
    inv = entry_investment(entry_factory(costed_scenario, exclude_design_controls=True))
    assert inv.design_cost == 0.0
    assert inv.controls_cost == 0.0
    assert inv.assembly_cost == 12_000.0
    assert inv.training_cost == 1_200.0


def test_duration_is_capped_by_analysis_period(costed_scenario, entry_factory):
    entry = entry_factory(costed_scenario, start_month="2026-01", end_month="2030-12", analysis_period=24)
    assert months_between(entry.start_month, entry.end_month) == 60
    assert entry_duration(entry) == 24
    assert entry_duration(entry_factory(costed_scenario, end_month="2026-06")) == 6


def test_overtime_premium_for_heavy_time_based_volume(time_based_scenario, entry_factory):
    # 12 months = 51.96 weeks; 12,470.4 units at 30 min with a crew of 2 is 60 h/week each.
    entry = entry_factory(time_based_scenario, actual_units=12_470.4, end_month="2026-12")
    has_overtime, premium = overtime_premium(entry, entry_duration(entry))
    assert has_overtime
    assert premium == pytest.approx(70 / 60)

    er = scale_entry(entry)
    assert er.has_overtime
    assert er.scale_factor == pytest.approx(12_470.4 / 200 * 70 / 60)


def test_no_overtime_under_forty_hours(time_based_scenario, entry_factory):
    entry = entry_factory(time_based_scenario, actual_units=500)
    assert overtime_premium(entry, entry_duration(entry)) == (False, 1.0)


def test_direct_entries_never_carry_overtime(direct_scenario, entry_factory):
    entry = entry_factory(direct_scenario, actual_units=10_000_000)
    assert overtime_premium(entry, entry_duration(entry)) == (False, 1.0)


def test_hidden_entries_excluded_from_aggregates(costed_scenario, time_based_scenario, entry_factory):
    visible = entry_factory(costed_scenario, id="a")
    hidden = entry_factory(time_based_scenario, id="b", hidden=True)
    result = compute_portfolio(PortfolioState(entries=(visible, hidden), department_annual_salary=50_000.0))

    only_visible = scale_entry(visible)
    agg = result.aggregates
    assert len(result.entry_results) == 2
    assert agg.total_value_created == pytest.approx(only_visible.scaled_value)
    assert agg.total_investment == pytest.approx(only_visible.scaled_investment)
    assert agg.net_profit == pytest.approx(only_visible.scaled_value - 50_000.0)
    assert agg.department_roi == pytest.approx((only_visible.scaled_value - 50_000.0) / 50_000.0 * 100)
    assert "b" not in result.monthly_savings_timeline.columns


def test_zero_salary_yields_zero_roi(costed_scenario, entry_factory):
    result = compute_portfolio(PortfolioState(entries=(entry_factory(costed_scenario),)))
    assert result.aggregates.department_cost == 0.0
    assert result.aggregates.department_roi == 0.0


def test_timelines_span_all_windows_and_zero_outside(costed_scenario, time_based_scenario, entry_factory):
    first = entry_factory(costed_scenario, id="a", start_month="2026-01", end_month="2026-06")
    second = entry_factory(time_based_scenario, id="b", start_month="2026-04", end_month="2026-09")
    results = [scale_entry(first), scale_entry(second)]
    savings_df, net_df = build_timelines(results)

    assert list(savings_df.index) == [f"2026-{m:02d}" for m in range(1, 10)]
    assert savings_df.loc["2026-01", "Label"] == "Jan 2026"
    assert (savings_df.loc["2026-07":, "a"] == 0.0).all()
    assert (savings_df.loc[:"2026-03", "b"] == 0.0).all()
    assert (net_df.loc[:"2026-03", "b"] == 0.0).all()

    rows = results[1].results.monthly_breakdowns
    assert savings_df.loc["2026-04", "b"] == pytest.approx(rows[0].monthly_savings * results[1].scale_factor)
    assert net_df.loc["2026-05", "b"] == pytest.approx(
        rows[1].cumulative_savings * results[1].scale_factor - rows[1].cumulative_investment
    )


def test_empty_portfolio_has_empty_timelines():
    result = compute_portfolio(PortfolioState())
    assert result.entry_results == []
    assert result.monthly_savings_timeline.empty
    assert result.net_position_timeline.empty
    assert result.aggregates.total_value_created == 0.0


def test_zero_volume_entries_skip_timeline(costed_scenario, entry_factory):
    savings_df, _ = build_timelines([scale_entry(entry_factory(costed_scenario, actual_units=0))])
    assert savings_df.empty


def test_create_entry_defaults_to_reference_volume(costed_scenario):
    entry = create_entry(
        costed_scenario,
        "  Plant B  ",
        24,
        start_month="2026-05",
        id_factory=counter_id_factory("portfolio-entry"),
    )
    assert entry.id == "portfolio-entry-1"
    assert entry.project_name == "Plant B"
    assert entry.actual_units == 50.0
    assert entry.tool_count == 1
    assert entry.end_month == "2028-04"
    assert entry.baseline_savings == costed_scenario.savings
    assert entry.scenario_name == costed_scenario.name


def test_create_entry_without_start_uses_current_month(costed_scenario):
    entry = create_entry(costed_scenario, "", 36)
    assert entry.project_name == "Untitled Project"
    assert months_between(entry.start_month, entry.end_month) == 36


def test_add_remove_and_update_entries(costed_scenario, entry_factory):
    state = add_entry(PortfolioState(), entry_factory(costed_scenario, id="a"))
    state = add_entry(state, entry_factory(costed_scenario, id="b"))
    state = update_entry(state, "b", actual_units=75.0, tool_count=2, hidden=True)

    b = state.entries[1]
    assert (b.actual_units, b.tool_count, b.hidden) == (75.0, 2, True)
    assert state.entries[0].actual_units == 50.0

    state = remove_entry(state, "a")
    assert [e.id for e in state.entries] == ["b"]


def test_update_entry_rejects_unknown_fields(costed_scenario, entry_factory):
    state = PortfolioState(entries=(entry_factory(costed_scenario),))
    with pytest.raises(ValueError, match="scenario"):
        update_entry(state, "entry-1", scenario=None)


@pytest.mark.parametrize(
    "updates",
    [
        {"tool_count": 0},
        {"actual_units": -1.0},
        {"start_month": "2026-13"},
        {"end_month": "2025-12"},
    ],
)
def test_update_entry_rejects_invalid_values(costed_scenario, entry_factory, updates):
    state = PortfolioState(entries=(entry_factory(costed_scenario),))
    with pytest.raises(ValueError):
        update_entry(state, "entry-1", **updates)


def test_add_entry_validates(costed_scenario, entry_factory):
    with pytest.raises(ValueError):
        add_entry(PortfolioState(), entry_factory(costed_scenario, tool_count=0))


def test_portfolio_settings(costed_scenario, entry_factory):
    state = set_department_salary(PortfolioState(), -10.0)
    assert state.department_annual_salary == 0.0
    state = set_portfolio_name(set_department_salary(state, 95_000), "Automation FY27")
    assert state.department_annual_salary == 95_000.0
    assert state.portfolio_name == "Automation FY27"
    assert reset_portfolio() == PortfolioState()


def test_load_portfolio_validates_entries(costed_scenario, entry_factory):
    state = load_portfolio([entry_factory(costed_scenario)], department_annual_salary=-1, portfolio_name="Imported")
    assert len(state.entries) == 1
    assert state.department_annual_salary == 0.0
    assert state.portfolio_name == "Imported"
    with pytest.raises(ValueError):
        load_portfolio([entry_factory(costed_scenario, end_month="2025-01")])
