"""KPI and comparison tables for the dashboard banners."""

from __future__ import annotations

import pandas as pd

from rollout_roi.formatting import format_month
from rollout_roi.model import results_frame
from rollout_roi.records import ScenarioResults


def break_even_label(results: ScenarioResults) -> str:
    if results.break_even_month is None:
        return f"Not within {results.analysis_period} months"
    return format_month(results.break_even_month)


def compute_metrics(results: ScenarioResults) -> dict:
    final = results.final_month
    return {
        "break_even_month": results.break_even_month,
        "break_even_label": break_even_label(results),
        "year1_roi": results.year1_roi,
        "net_savings": results.three_year_net_savings,
        "total_investment": results.total_investment,
        "cumulative_savings": final.cumulative_savings if final else 0.0,
        "savings_per_unit": results.savings_per_unit,
        "monthly_savings_at_full_adoption": results.monthly_savings_at_full_adoption,
        "qualitative_labels": results.qualitative.active_labels(),
        "analysis_period": results.analysis_period,
    }


def scenario_comparison_frame(results_list: list[ScenarioResults]) -> pd.DataFrame:
    rows = []
    for r in results_list:
        m = compute_metrics(r)
        rows.append(
            {
                "Scenario": r.scenario_name,
                "Break-even": m["break_even_label"],
                "Year 1 ROI %": m["year1_roi"],
                "Net Savings": m["net_savings"],
                "Total Investment": m["total_investment"],
                "Savings / Unit": m["savings_per_unit"],
                "Monthly Savings (Full Adoption)": m["monthly_savings_at_full_adoption"],
                "Flags": ", ".join(m["qualitative_labels"]),
            }
        )
    return pd.DataFrame(rows)


def savings_by_year(results: ScenarioResults) -> pd.DataFrame:
    """Savings and investment cost per analysis year, with the closing net position."""
    df = results_frame(results)
    if df.empty:
        return pd.DataFrame(columns=["Year", "Monthly Savings", "Monthly Investment Cost", "Net Position"])
    by_year = df.groupby("Year", as_index=False).agg(
        {"Monthly Savings": "sum", "Monthly Investment Cost": "sum", "Net Position": "last"}
    )
    return by_year
