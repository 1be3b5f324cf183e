from __future__ import annotations

import pandas as pd

from rollout_roi.integrity_checks import run_integrity_checks
from rollout_roi.model import compute_scenario, results_frame
from rollout_roi.records import DirectRate


def test_integrity_checks_pass_for_fixture_scenarios(direct_scenario, costed_scenario, time_based_scenario):
    for scenario in (direct_scenario, costed_scenario, time_based_scenario):
        for period in (6, 36, 60):
            df = results_frame(compute_scenario(scenario, period))
            findings = run_integrity_checks(df, scenario)
            assert findings == [], f"Unexpected integrity findings for {scenario.name}/{period}: {findings}"


def test_integrity_checks_pass_for_edge_scenarios(scenario_factory):
    scenarios = [
        scenario_factory(DirectRate(0.0), reference_units=0),
        scenario_factory(DirectRate(1.0), reference_units=1, assembly_cost=1_000_000.0, tool_lifespan_months=1),
        scenario_factory(DirectRate(250.0), reference_units=3, ramp=1, monthly_recurring_cost=75.0),
    ]
    for scenario in scenarios:
        assert run_integrity_checks(results_frame(compute_scenario(scenario, 48)), scenario) == []


def test_integrity_checks_detects_identity_break(costed_scenario):
    df = results_frame(compute_scenario(costed_scenario, 36))
    broken = df.copy()
    broken.loc[broken.index[4], "Net Position"] += 1.0
    findings = run_integrity_checks(broken, costed_scenario)
    by_check = {f["Check"]: f for f in findings}
    assert set(by_check) == {"Net position identity"}
    assert by_check["Net position identity"]["Month of Max Delta"] == "M5"
    assert abs(by_check["Net position identity"]["Max Abs Delta"] - 1.0) < 1e-9


def test_integrity_checks_detect_roll_forward_and_monotonic_breaks(costed_scenario):
    df = results_frame(compute_scenario(costed_scenario, 36))
    broken = df.copy()
    broken.loc[broken.index[10], "Cumulative Savings"] = 0.0
    broken["Net Position"] = broken["Cumulative Savings"] - broken["Cumulative Investment"]
    check_names = {f["Check"] for f in run_integrity_checks(broken, costed_scenario)}
    assert "Cumulative savings roll-forward" in check_names
    assert "Cumulative Savings monotonic" in check_names


def test_integrity_checks_detect_wrong_opening_investment(costed_scenario, direct_scenario):
    df = results_frame(compute_scenario(costed_scenario, 12))
    check_names = {f["Check"] for f in run_integrity_checks(df, direct_scenario)}
    assert check_names == {"Cumulative investment roll-forward"}


def test_integrity_checks_flag_missing_frame(costed_scenario):
    findings = run_integrity_checks(pd.DataFrame(), costed_scenario)
    assert findings[0]["Check"] == "Dataframe not available"
