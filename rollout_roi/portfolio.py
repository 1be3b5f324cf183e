"""Portfolio rescaling of simulated scenarios onto real deployments."""

from __future__ import annotations

from dataclasses import dataclass, replace

import pandas as pd

from rollout_roi.calendar_utils import (
    add_months,
    current_month_key,
    format_month_label,
    generate_month_range,
    is_month_key,
    months_between,
)
from rollout_roi.defaults import OVERTIME_MULTIPLIER, STANDARD_WEEKLY_HOURS, WEEKS_PER_MONTH
from rollout_roi.model import compute_scenario, effective_reference_units
from rollout_roi.records import (
    CrewTimeComparison,
    InvestmentInputs,
    PortfolioEntry,
    PortfolioState,
    ScenarioInputs,
    ScenarioResults,
)
from rollout_roi.scenarios import IdFactory, uuid_id_factory


UPDATABLE_ENTRY_FIELDS = {
    "actual_units",
    "tool_count",
    "start_month",
    "end_month",
    "project_name",
    "exclude_design_controls",
    "exclude_training",
    "hidden",
}


@dataclass(frozen=True)
class EntryResult:
    entry: PortfolioEntry
    results: ScenarioResults
    duration_months: int
    scale_factor: float
    scaled_savings: float
    scaled_investment: float
    scaled_value: float
    has_overtime: bool
    overtime_premium: float

    @property
    def base_cumulative_savings(self) -> float:
        final = self.results.final_month
        return final.cumulative_savings if final else 0.0


@dataclass(frozen=True)
class PortfolioAggregates:
    total_value_created: float
    total_investment: float
    department_cost: float
    net_profit: float
    department_roi: float


@dataclass
class PortfolioResult:
    entry_results: list[EntryResult]
    aggregates: PortfolioAggregates
    monthly_savings_timeline: pd.DataFrame
    net_position_timeline: pd.DataFrame


def validate_entry(entry: PortfolioEntry) -> None:
    if int(entry.tool_count) < 1:
        raise ValueError("tool_count must be at least 1.")
    if float(entry.actual_units) < 0:
        raise ValueError("actual_units must be non-negative.")
    if not is_month_key(entry.start_month) or not is_month_key(entry.end_month):
        raise ValueError("start_month and end_month must be YYYY-MM month keys.")
    if months_between(entry.start_month, entry.end_month) <= 0:
        raise ValueError("end_month must not be before start_month.")
    if int(entry.analysis_period) < 1:
        raise ValueError("analysis_period must be at least 1.")


def entry_duration(entry: PortfolioEntry) -> int:
    # Months past the simulated horizon have no data to scale.
    return min(months_between(entry.start_month, entry.end_month), int(entry.analysis_period))


def overtime_premium(entry: PortfolioEntry, duration_months: int) -> tuple[bool, float]:
    """Return (has_overtime, premium) for time-based entries whose volume forces >40h weeks."""
    basis = entry.scenario.savings.basis
    if not isinstance(basis, CrewTimeComparison) or duration_months <= 0:
        return False, 1.0
    if basis.current_crew_size <= 0:
        return False, 1.0
    weeks = duration_months * WEEKS_PER_MONTH
    total_hours = entry.actual_units * basis.current_time_per_unit / 60
    weekly_hours = total_hours / weeks / basis.current_crew_size
    if weekly_hours <= STANDARD_WEEKLY_HOURS:
        return False, 1.0
    effective_hours = STANDARD_WEEKLY_HOURS + (weekly_hours - STANDARD_WEEKLY_HOURS) * OVERTIME_MULTIPLIER
    return True, effective_hours / weekly_hours


def entry_investment(entry: PortfolioEntry) -> InvestmentInputs:
    """Apply cost exclusions, then scale the per-tool costs by tool count.

    Design and controls are one-time engineering costs and stay at 1x.
    """
    inv = entry.scenario.investment
    if entry.exclude_design_controls:
        inv = replace(inv, design_cost=0.0, controls_cost=0.0)
    if entry.exclude_training:
        inv = replace(inv, training_cost=0.0)
    n = int(entry.tool_count)
    return replace(
        inv,
        assembly_cost=inv.assembly_cost * n,
        training_cost=inv.training_cost * n,
        deployment_cost=inv.deployment_cost * n,
        monthly_recurring_cost=inv.monthly_recurring_cost * n,
    )


def scale_entry(entry: PortfolioEntry) -> EntryResult:
    duration = entry_duration(entry)
    scale_factor = entry.actual_units / effective_reference_units(entry.baseline_savings.reference_units)
    has_overtime, premium = overtime_premium(entry, duration)
    if has_overtime:
        scale_factor *= premium

    modified = replace(entry.scenario, investment=entry_investment(entry))
    results = compute_scenario(modified, entry.analysis_period)

    final = results.final_month
    base_savings = final.cumulative_savings if final else 0.0
    scaled_savings = base_savings * scale_factor
    # Investment already reflects the real tool count, so it is not unit-scaled.
    scaled_investment = final.cumulative_investment if final else 0.0
    return EntryResult(
        entry=entry,
        results=results,
        duration_months=duration,
        scale_factor=scale_factor,
        scaled_savings=scaled_savings,
        scaled_investment=scaled_investment,
        scaled_value=scaled_savings - scaled_investment,
        has_overtime=has_overtime,
        overtime_premium=premium,
    )


def aggregate_entries(entry_results: list[EntryResult], department_annual_salary: float) -> PortfolioAggregates:
    visible = [er for er in entry_results if not er.entry.hidden]
    total_value = sum(er.scaled_value for er in visible)
    total_investment = sum(er.scaled_investment for er in visible)
    salary = float(department_annual_salary)
    roi = (total_value - salary) / salary * 100 if salary > 0 else 0.0
    return PortfolioAggregates(
        total_value_created=total_value,
        total_investment=total_investment,
        department_cost=salary,
        net_profit=total_value - salary,
        department_roi=roi,
    )


def _timeline_entries(entry_results: list[EntryResult]) -> list[EntryResult]:
    return [er for er in entry_results if er.duration_months > 0 and er.scale_factor > 0 and not er.entry.hidden]


def build_timelines(entry_results: list[EntryResult]) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Return (monthly savings, net position) calendar timelines, one column per entry."""
    active = _timeline_entries(entry_results)
    if not active:
        empty = pd.DataFrame(columns=["Label"], index=pd.Index([], name="Month"))
        return empty, empty.copy()

    global_start = min(er.entry.start_month for er in active)
    global_end = max(er.entry.end_month for er in active)
    month_range = generate_month_range(global_start, global_end)

    savings_cols: dict[str, list[float]] = {}
    net_cols: dict[str, list[float]] = {}
    for er in active:
        position = {key: i for i, key in enumerate(generate_month_range(er.entry.start_month, er.entry.end_month))}
        breakdowns = er.results.monthly_breakdowns
        savings_vals = []
        net_vals = []
        for key in month_range:
            idx = position.get(key)
            if idx is None or idx >= len(breakdowns):
                savings_vals.append(0.0)
                net_vals.append(0.0)
                continue
            row = breakdowns[idx]
            savings_vals.append(row.monthly_savings * er.scale_factor)
            net_vals.append(row.cumulative_savings * er.scale_factor - row.cumulative_investment)
        savings_cols[er.entry.id] = savings_vals
        net_cols[er.entry.id] = net_vals

    index = pd.Index(month_range, name="Month")
    labels = [format_month_label(k) for k in month_range]
    savings_df = pd.DataFrame({"Label": labels, **savings_cols}, index=index)
    net_df = pd.DataFrame({"Label": labels, **net_cols}, index=index)
    return savings_df, net_df


def compute_portfolio(state: PortfolioState) -> PortfolioResult:
    entry_results = [scale_entry(e) for e in state.entries]
    savings_df, net_df = build_timelines(entry_results)
    return PortfolioResult(
        entry_results=entry_results,
        aggregates=aggregate_entries(entry_results, state.department_annual_salary),
        monthly_savings_timeline=savings_df,
        net_position_timeline=net_df,
    )


def create_entry(
    scenario: ScenarioInputs,
    project_name: str,
    analysis_period: int,
    *,
    start_month: str | None = None,
    end_month: str | None = None,
    actual_units: float | None = None,
    tool_count: int = 1,
    exclude_design_controls: bool = False,
    exclude_training: bool = False,
    source_file_name: str = "",
    id_factory: IdFactory | None = None,
) -> PortfolioEntry:
    """Build an entry from a scenario picked out of a loaded project.

    Defaults mirror the picker: the window starts this month and spans the
    project's analysis period, and actual volume equals the reference volume.
    """
    start = start_month or current_month_key()
    end = end_month or add_months(start, max(0, int(analysis_period) - 1))
    next_id = id_factory or uuid_id_factory("portfolio-entry")
    entry = PortfolioEntry(
        id=next_id(),
        project_name=project_name.strip() or "Untitled Project",
        scenario_name=scenario.name,
        actual_units=float(scenario.savings.reference_units if actual_units is None else actual_units),
        tool_count=int(tool_count),
        start_month=start,
        end_month=end,
        scenario=scenario,
        baseline_savings=scenario.savings,
        analysis_period=int(analysis_period),
        exclude_design_controls=exclude_design_controls,
        exclude_training=exclude_training,
        source_file_name=source_file_name,
    )
    validate_entry(entry)
    return entry


def add_entry(state: PortfolioState, entry: PortfolioEntry) -> PortfolioState:
    validate_entry(entry)
    return replace(state, entries=state.entries + (entry,))


def remove_entry(state: PortfolioState, entry_id: str) -> PortfolioState:
    return replace(state, entries=tuple(e for e in state.entries if e.id != entry_id))


def update_entry(state: PortfolioState, entry_id: str, **updates) -> PortfolioState:
    unknown = set(updates) - UPDATABLE_ENTRY_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be updated on a portfolio entry: {', '.join(sorted(unknown))}")
    entries = []
    for e in state.entries:
        if e.id == entry_id:
            e = replace(e, **updates)
            validate_entry(e)
        entries.append(e)
    return replace(state, entries=tuple(entries))


def set_department_salary(state: PortfolioState, salary: float) -> PortfolioState:
    return replace(state, department_annual_salary=max(0.0, float(salary)))


def set_portfolio_name(state: PortfolioState, name: str) -> PortfolioState:
    return replace(state, portfolio_name=name)


def set_portfolio_description(state: PortfolioState, description: str) -> PortfolioState:
    return replace(state, portfolio_description=description)


def load_portfolio(
    entries: list[PortfolioEntry] | tuple[PortfolioEntry, ...],
    department_annual_salary: float = 0.0,
    portfolio_name: str = "",
    portfolio_description: str = "",
) -> PortfolioState:
    for entry in entries:
        validate_entry(entry)
    return PortfolioState(
        entries=tuple(entries),
        department_annual_salary=max(0.0, float(department_annual_salary)),
        portfolio_name=portfolio_name,
        portfolio_description=portfolio_description,
    )


def reset_portfolio() -> PortfolioState:
    return PortfolioState()
