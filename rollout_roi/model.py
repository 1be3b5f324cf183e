"""Core month-by-month ROI simulation engine."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from rollout_roi.adoption import AdoptionCurve, adoption_series, linear_adoption
from rollout_roi.records import InvestmentInputs, MonthlyBreakdown, ScenarioInputs, ScenarioResults
from rollout_roi.savings import compute_savings_per_unit


YEAR1_MONTHS = 12

FRAME_COLUMNS = [
    "Year",
    "Month_Number",
    "Adoption Rate",
    "Monthly Savings",
    "Monthly Investment Cost",
    "Cumulative Savings",
    "Cumulative Investment",
    "Net Position",
]


def effective_reference_units(reference_units: float) -> float:
    # Zero or negative volume scales degenerately instead of erasing savings.
    return max(1.0, float(reference_units))


def is_redeployment_month(month: int, tool_lifespan_months: int) -> bool:
    if tool_lifespan_months <= 0 or month <= 1:
        return False
    return (month - 1) % tool_lifespan_months == 0


def redeployment_months(investment: InvestmentInputs, analysis_period: int) -> list[int]:
    """Months within the horizon that carry a redeployment charge."""
    return [
        m for m in range(1, int(analysis_period) + 1) if is_redeployment_month(m, int(investment.tool_lifespan_months))
    ]


def _redeployment_charges(investment: InvestmentInputs, horizon: int) -> np.ndarray:
    charges = np.zeros(horizon)
    for m in redeployment_months(investment, horizon):
        charges[m - 1] = investment.redeployment_cost
    return charges


def compute_scenario(
    inputs: ScenarioInputs,
    analysis_period: int,
    adoption_curve: AdoptionCurve = linear_adoption,
) -> ScenarioResults:
    savings = inputs.savings
    investment = inputs.investment
    horizon = max(0, int(analysis_period))

    per_unit_rate = compute_savings_per_unit(savings)
    units = effective_reference_units(savings.reference_units)
    utilization = float(savings.utilization_percent)

    adoption = adoption_series(adoption_curve, horizon, savings.adoption_ramp_months)
    monthly_savings = per_unit_rate * units * (adoption * utilization)
    monthly_costs = investment.monthly_recurring_cost + _redeployment_charges(investment, horizon)

    cumulative_savings = np.zeros(horizon)
    cumulative_investment = np.zeros(horizon)
    net_position = np.zeros(horizon)

    running_savings = 0.0
    running_investment = investment.upfront_cost + investment.training_cost + investment.deployment_cost
    break_even_month: int | None = None
    for m in range(horizon):
        running_savings += float(monthly_savings[m])
        running_investment += float(monthly_costs[m])
        cumulative_savings[m] = running_savings
        cumulative_investment[m] = running_investment
        net_position[m] = running_savings - running_investment
        # Strictly positive: an exact tie has not broken even yet.
        if break_even_month is None and net_position[m] > 0:
            break_even_month = m + 1

    breakdowns = tuple(
        MonthlyBreakdown(
            month=m + 1,
            adoption_rate=float(adoption[m]),
            monthly_savings=float(monthly_savings[m]),
            monthly_investment_cost=float(monthly_costs[m]),
            cumulative_savings=float(cumulative_savings[m]),
            cumulative_investment=float(cumulative_investment[m]),
            net_position=float(net_position[m]),
        )
        for m in range(horizon)
    )

    if horizon > 0:
        total_investment = float(cumulative_investment[-1])
        net_savings = float(net_position[-1])
        # Horizons shorter than a year fall back to the last simulated month.
        y1 = min(YEAR1_MONTHS, horizon) - 1
        year1_investment = float(cumulative_investment[y1])
        year1_roi = float(net_position[y1]) / year1_investment * 100 if year1_investment > 0 else 0.0
    else:
        total_investment = 0.0
        net_savings = 0.0
        year1_roi = 0.0

    return ScenarioResults(
        scenario_id=inputs.id,
        scenario_name=inputs.name,
        color=inputs.color,
        qualitative=inputs.qualitative,
        monthly_breakdowns=breakdowns,
        break_even_month=break_even_month,
        year1_roi=year1_roi,
        three_year_net_savings=net_savings,
        total_investment=total_investment,
        savings_per_unit=per_unit_rate,
        monthly_savings_at_full_adoption=per_unit_rate * units * utilization,
    )


def compute_scenarios(
    scenarios: Iterable[ScenarioInputs],
    analysis_period: int,
    adoption_curve: AdoptionCurve = linear_adoption,
) -> list[ScenarioResults]:
    return [compute_scenario(s, analysis_period, adoption_curve) for s in scenarios]


def results_frame(results: ScenarioResults) -> pd.DataFrame:
    """Return the monthly breakdown as a table for display and export."""
    rows = results.monthly_breakdowns
    t = np.arange(len(rows), dtype=int)
    return pd.DataFrame(
        {
            "Year": (t // YEAR1_MONTHS) + 1,
            "Month_Number": t + 1,
            "Adoption Rate": [r.adoption_rate for r in rows],
            "Monthly Savings": [r.monthly_savings for r in rows],
            "Monthly Investment Cost": [r.monthly_investment_cost for r in rows],
            "Cumulative Savings": [r.cumulative_savings for r in rows],
            "Cumulative Investment": [r.cumulative_investment for r in rows],
            "Net Position": [r.net_position for r in rows],
        },
        columns=FRAME_COLUMNS,
    )
