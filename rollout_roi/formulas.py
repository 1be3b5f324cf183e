"""Human-readable formula, substitution, and result triples for the "show the math" panels.

Values are recomputed here from the inputs rather than read from the
simulation, so the panel doubles as an independent check on the engine.
"""

from __future__ import annotations

from dataclasses import dataclass

from rollout_roi.adoption import AdoptionCurve, linear_adoption, s_curve_adoption
from rollout_roi.calendar_utils import format_month_label, months_between
from rollout_roi.formatting import (
    format_currency,
    format_currency_decimals,
    format_number,
    format_percent,
)
from rollout_roi.records import CrewTimeComparison, DirectRate, ScenarioInputs


LOCKED_PLACEHOLDER = "[locked]"


@dataclass(frozen=True)
class FormulaDisplay:
    id: str
    label: str
    formula: str
    substituted: str
    result: str
    value: float | None = None


def _labor_cost(crew: float, minutes: float, rate: float) -> float:
    return crew * minutes / 60 * rate


def _savings_rows(inputs: ScenarioInputs) -> tuple[list[FormulaDisplay], float]:
    s = inputs.savings
    basis = s.basis
    extra = s.additional_savings_per_unit
    rows: list[FormulaDisplay] = []
    if isinstance(basis, DirectRate):
        rate = max(0.0, basis.direct_savings_per_unit + extra)
        rows.append(
            FormulaDisplay(
                id="savings-per-unit",
                label=f"Savings per {s.unit_name}",
                formula="max(0, direct_savings + additional_savings)",
                substituted=f"max(0, {format_currency_decimals(basis.direct_savings_per_unit)} + {format_currency_decimals(extra)})",
                result=format_currency_decimals(rate),
                value=rate,
            )
        )
        return rows, rate
    if not isinstance(basis, CrewTimeComparison):
        raise TypeError(f"Unsupported savings basis: {type(basis).__name__}")

    current = _labor_cost(basis.current_crew_size, basis.current_time_per_unit, basis.hourly_rate)
    proposed = _labor_cost(basis.proposed_crew_size, basis.proposed_time_per_unit, basis.hourly_rate)
    labor = current - proposed if basis.current_time_per_unit > 0 else 0.0
    rate = max(0.0, labor + extra)
    rows.extend(
        [
            FormulaDisplay(
                id="current-labor-cost",
                label=f"Current Labor Cost per {s.unit_name}",
                formula="current_crew × current_minutes / 60 × hourly_rate",
                substituted=(
                    f"{format_number(basis.current_crew_size)} × {format_number(basis.current_time_per_unit)} / 60"
                    f" × {format_currency_decimals(basis.hourly_rate)}"
                ),
                result=format_currency_decimals(current),
                value=current,
            ),
            FormulaDisplay(
                id="proposed-labor-cost",
                label=f"Proposed Labor Cost per {s.unit_name}",
                formula="proposed_crew × proposed_minutes / 60 × hourly_rate",
                substituted=(
                    f"{format_number(basis.proposed_crew_size)} × {format_number(basis.proposed_time_per_unit)} / 60"
                    f" × {format_currency_decimals(basis.hourly_rate)}"
                ),
                result=format_currency_decimals(proposed),
                value=proposed,
            ),
            FormulaDisplay(
                id="savings-per-unit",
                label=f"Savings per {s.unit_name}",
                formula="max(0, (current_cost − proposed_cost) + additional_savings)",
                substituted=(
                    f"max(0, ({format_currency_decimals(current)} − {format_currency_decimals(proposed)})"
                    f" + {format_currency_decimals(extra)})"
                ),
                result=format_currency_decimals(rate),
                value=rate,
            ),
        ]
    )
    return rows, rate


def get_formula_displays(
    inputs: ScenarioInputs,
    analysis_period: int,
    cost_locked: bool = False,
    adoption_curve: AdoptionCurve = linear_adoption,
) -> list[FormulaDisplay]:
    """Formula rows for one scenario.

    Pass the same ``adoption_curve`` given to ``compute_scenario`` or the
    savings rows will not match the simulated results.
    """
    s = inputs.savings
    inv = inputs.investment
    horizon = max(0, int(analysis_period))

    rows, rate = _savings_rows(inputs)
    units = max(1.0, float(s.reference_units))
    utilization = float(s.utilization_percent)
    full_monthly = rate * units * utilization

    def money(value: float) -> str:
        return LOCKED_PLACEHOLDER if cost_locked else format_currency(value)

    upfront = inv.assembly_cost + inv.design_cost + inv.controls_cost
    one_time = upfront + inv.training_cost + inv.deployment_cost
    lifespan = int(inv.tool_lifespan_months)
    redeploy_cost = inv.assembly_cost + inv.design_cost + inv.controls_cost + inv.deployment_cost

    def redeployments_through(month: int) -> int:
        if lifespan <= 0:
            return 0
        return sum(1 for m in range(2, month + 1) if (m - 1) % lifespan == 0)

    def investment_through(month: int) -> float:
        return one_time + inv.monthly_recurring_cost * month + redeploy_cost * redeployments_through(month)

    def savings_through(month: int) -> float:
        return sum(rate * units * (adoption_curve(t, s.adoption_ramp_months) * utilization) for t in range(1, month + 1))

    redeploy_count = redeployments_through(horizon)
    recurring_total = inv.monthly_recurring_cost * horizon
    total_investment = investment_through(horizon)
    cumulative_savings = savings_through(horizon)
    net_savings = cumulative_savings - total_investment

    break_even = next(
        (m for m in range(1, horizon + 1) if savings_through(m) - investment_through(m) > 0),
        None,
    )
    y1 = min(12, horizon)
    y1_investment = investment_through(y1) if y1 > 0 else 0.0
    y1_net = savings_through(y1) - y1_investment if y1 > 0 else 0.0
    year1_roi = y1_net / y1_investment * 100 if y1_investment > 0 else 0.0

    ramp = s.adoption_ramp_months
    if adoption_curve is linear_adoption:
        adoption_formula = "min(1, t / adoption_ramp) × utilization"
        adoption_substituted = f"min(1, t / {ramp}) × {format_percent(utilization)}"
        adoption_result = f"Linear ramp over {ramp} months"
    elif adoption_curve is s_curve_adoption:
        adoption_formula = "1 / (1 + e^(−6 / adoption_ramp × (t − adoption_ramp / 2))) × utilization"
        adoption_substituted = f"1 / (1 + e^(−6 / {ramp} × (t − {ramp / 2:g}))) × {format_percent(utilization)}"
        adoption_result = f"S-curve ramp over {ramp} months"
    else:
        name = getattr(adoption_curve, "__name__", "custom")
        adoption_formula = "adoption(t, adoption_ramp) × utilization"
        adoption_substituted = f"{name}(t, {ramp}) × {format_percent(utilization)}"
        adoption_result = f"{name} over {ramp} months"

    rows.extend(
        [
            FormulaDisplay(
                id="monthly-savings-full-adoption",
                label="Monthly Savings (Full Adoption)",
                formula="savings_per_unit × reference_units × utilization",
                substituted=f"{format_currency_decimals(rate)} × {format_number(units)} × {format_percent(utilization)}",
                result=format_currency(full_monthly),
                value=full_monthly,
            ),
            FormulaDisplay(
                id="upfront-cost",
                label="Upfront Cost",
                formula="assembly + design + controls",
                substituted=f"{money(inv.assembly_cost)} + {money(inv.design_cost)} + {money(inv.controls_cost)}",
                result=format_currency(upfront),
                value=upfront,
            ),
            FormulaDisplay(
                id="one-time-investment",
                label="One-Time Investment",
                formula="upfront + training + deployment",
                substituted=(
                    f"{money(upfront)} + {format_currency(inv.training_cost)} + {format_currency(inv.deployment_cost)}"
                ),
                result=format_currency(one_time),
                value=one_time,
            ),
            FormulaDisplay(
                id="redeployment-cost",
                label="Redeployment Cost",
                formula="(assembly + design + controls + deployment) × redeployments",
                substituted=(
                    f"({money(inv.assembly_cost)} + {money(inv.design_cost)} + {money(inv.controls_cost)}"
                    f" + {format_currency(inv.deployment_cost)}) × {redeploy_count}"
                    if lifespan > 0
                    else "No redeployment (tool lifespan not set)"
                ),
                result=format_currency(redeploy_cost * redeploy_count),
                value=redeploy_cost * redeploy_count,
            ),
            FormulaDisplay(
                id="recurring-cost",
                label="Recurring Cost",
                formula="monthly_recurring × months",
                substituted=f"{format_currency(inv.monthly_recurring_cost)} × {horizon}",
                result=format_currency(recurring_total),
                value=recurring_total,
            ),
            FormulaDisplay(
                id="total-investment",
                label="Total Investment",
                formula="one_time + recurring + redeployment",
                substituted=(
                    f"{format_currency(one_time)} + {format_currency(recurring_total)}"
                    f" + {format_currency(redeploy_cost * redeploy_count)}"
                ),
                result=format_currency(total_investment),
                value=total_investment,
            ),
            FormulaDisplay(
                id="adoption-rate",
                label="Effective Adoption (month t)",
                formula=adoption_formula,
                substituted=adoption_substituted,
                result=adoption_result,
            ),
            FormulaDisplay(
                id="cumulative-savings",
                label="Cumulative Savings",
                formula="Σ savings_per_unit × reference_units × effective_adoption(t)",
                substituted=f"Σ over {horizon} months of {format_currency(full_monthly)} × adoption(t)",
                result=format_currency(cumulative_savings),
                value=cumulative_savings,
            ),
            FormulaDisplay(
                id="net-savings",
                label=f"{horizon}-Month Net Savings",
                formula="cumulative_savings − total_investment",
                substituted=f"{format_currency(cumulative_savings)} − {format_currency(total_investment)}",
                result=format_currency(net_savings),
                value=net_savings,
            ),
            FormulaDisplay(
                id="break-even",
                label="Break-even Month",
                formula="first month where cumulative_savings − cumulative_investment > 0",
                substituted=f"Scan months 1..{horizon}",
                result=f"Month {break_even}" if break_even is not None else "Not reached",
                value=float(break_even) if break_even is not None else None,
            ),
            FormulaDisplay(
                id="year1-roi",
                label="Year 1 ROI",
                formula="(net_position / cumulative_investment) × 100 at month 12",
                substituted=(
                    f"({format_currency(y1_net)} / {format_currency(y1_investment)}) × 100"
                    if y1_investment > 0
                    else "N/A (no investment)"
                ),
                result=f"{year1_roi:.1f}%",
                value=year1_roi,
            ),
        ]
    )
    return rows


def get_entry_formulas(er) -> list[FormulaDisplay]:
    """Formula rows explaining one rescaled portfolio entry (an ``EntryResult``)."""
    entry = er.entry
    unit = entry.scenario.savings.unit_name
    ref_units = entry.baseline_savings.reference_units
    calendar_months = months_between(entry.start_month, entry.end_month)
    capped = "" if calendar_months == er.duration_months else f" (capped to {er.duration_months} by analysis period)"
    overtime_note = f" (incl. {(er.overtime_premium - 1) * 100:.0f}% OT premium)" if er.has_overtime else ""
    base = er.base_cumulative_savings

    rows = [
        FormulaDisplay(
            id=f"{entry.id}-duration",
            label="Duration",
            formula="months_between(start, end)",
            substituted=f"months_between({format_month_label(entry.start_month)}, {format_month_label(entry.end_month)})",
            result=f"{calendar_months} months{capped}",
            value=float(er.duration_months),
        ),
        FormulaDisplay(
            id=f"{entry.id}-scale-factor",
            label="Scale Factor",
            formula=f"actual_{unit}s / reference_{unit}s",
            substituted=(
                f"{format_number(entry.actual_units)} / {format_number(ref_units)}"
                if ref_units > 0
                else f"N/A (zero reference {unit}s)"
            ),
            result=f"{er.scale_factor * 100:.2f}%{overtime_note}",
            value=er.scale_factor,
        ),
        FormulaDisplay(
            id=f"{entry.id}-tool-count",
            label="Tool Count",
            formula="assembly, training, deployment, recurring × tool_count (design & controls are one-time)",
            substituted=f"Per-tool costs × {entry.tool_count}; design & controls unchanged",
            result=f"{entry.tool_count} tool(s)",
            value=float(entry.tool_count),
        ),
        FormulaDisplay(
            id=f"{entry.id}-base-savings",
            label="Base Cumulative Savings (unscaled)",
            formula="cumulative savings over the simulated period",
            substituted=f"Full {entry.analysis_period}-month simulation",
            result=format_currency(base),
            value=base,
        ),
        FormulaDisplay(
            id=f"{entry.id}-scaled-savings",
            label="Scaled Cumulative Savings",
            formula="base_cumulative_savings × scale_factor",
            substituted=f"{format_currency(base)} × {er.scale_factor * 100:.2f}%",
            result=format_currency(er.scaled_savings),
            value=er.scaled_savings,
        ),
        FormulaDisplay(
            id=f"{entry.id}-investment",
            label="Total Investment (tool-count adjusted)",
            formula="cumulative investment over the period, not unit-scaled",
            substituted=f"Tool count: {entry.tool_count}; investment does not scale with unit ratio",
            result=format_currency(er.scaled_investment),
            value=er.scaled_investment,
        ),
        FormulaDisplay(
            id=f"{entry.id}-scaled-value",
            label="Scaled Net Value",
            formula="scaled_cumulative_savings − total_investment",
            substituted=f"{format_currency(er.scaled_savings)} − {format_currency(er.scaled_investment)}",
            result=format_currency(er.scaled_value),
            value=er.scaled_value,
        ),
    ]

    inv = entry.scenario.investment
    if entry.exclude_design_controls:
        rows.append(
            FormulaDisplay(
                id=f"{entry.id}-exclude-dc",
                label="Exclude Design & Controls",
                formula="design_cost = 0, controls_cost = 0",
                substituted=f"Original design: {format_currency(inv.design_cost)}, controls: {format_currency(inv.controls_cost)}",
                result="Both zeroed before computation",
            )
        )
    if entry.exclude_training:
        rows.append(
            FormulaDisplay(
                id=f"{entry.id}-exclude-training",
                label="Exclude Training",
                formula="training_cost = 0",
                substituted=f"Original training: {format_currency(inv.training_cost)}",
                result="Zeroed before computation",
            )
        )
    if er.has_overtime:
        rows.append(
            FormulaDisplay(
                id=f"{entry.id}-overtime",
                label="Overtime Premium",
                formula="(40 + (weekly_hours − 40) × 1.5) / weekly_hours",
                substituted=f"Premium factor: {er.overtime_premium:.3f}",
                result=f"{(er.overtime_premium - 1) * 100:.1f}% additional cost",
                value=er.overtime_premium,
            )
        )
    return rows


def get_aggregate_formulas(portfolio_result) -> list[FormulaDisplay]:
    """Formula rows for organization-wide totals (a ``PortfolioResult``)."""
    agg = portfolio_result.aggregates
    visible = [er for er in portfolio_result.entry_results if not er.entry.hidden]
    value_terms = " + ".join(format_currency(er.scaled_value) for er in visible) or "(no entries)"
    invest_terms = " + ".join(format_currency(er.scaled_investment) for er in visible) or "(no entries)"
    salary = agg.department_cost
    return [
        FormulaDisplay(
            id="agg-total-value",
            label="Total Value Created",
            formula="Σ scaled_net_value (visible entries)",
            substituted=value_terms,
            result=format_currency(agg.total_value_created),
            value=agg.total_value_created,
        ),
        FormulaDisplay(
            id="agg-total-investment",
            label="Total Investment",
            formula="Σ investment (visible entries, tool-count adjusted, not unit-scaled)",
            substituted=invest_terms,
            result=format_currency(agg.total_investment),
            value=agg.total_investment,
        ),
        FormulaDisplay(
            id="agg-dept-cost",
            label="Department Cost",
            formula="department_annual_salary",
            substituted=format_currency(salary),
            result=format_currency(salary),
            value=salary,
        ),
        FormulaDisplay(
            id="agg-net-profit",
            label="Net Profit",
            formula="total_value − department_cost",
            substituted=f"{format_currency(agg.total_value_created)} − {format_currency(salary)}",
            result=format_currency(agg.net_profit),
            value=agg.net_profit,
        ),
        FormulaDisplay(
            id="agg-dept-roi",
            label="Department ROI",
            formula="((total_value − department_cost) / department_cost) × 100",
            substituted=(
                f"(({format_currency(agg.total_value_created)} − {format_currency(salary)}) / {format_currency(salary)}) × 100"
                if salary > 0
                else "N/A (department cost is $0)"
            ),
            result=f"{agg.department_roi:.1f}%",
            value=agg.department_roi,
        ),
    ]
