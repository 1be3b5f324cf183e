"""Project/portfolio file schema helpers, constants, and migration utilities."""

from __future__ import annotations

import math
from copy import deepcopy
from dataclasses import replace
from typing import Any

from rollout_roi.calendar_utils import add_months, current_month_key, is_month_key
from rollout_roi.defaults import (
    DEFAULT_ANALYSIS_PERIOD,
    DEFAULT_INVESTMENT,
    DEFAULT_QUALITATIVE,
    DEFAULT_SAVINGS,
    MAX_ANALYSIS_PERIOD,
    MIN_ANALYSIS_PERIOD,
    WEEKS_PER_MONTH,
)
from rollout_roi.portfolio import load_portfolio, validate_entry
from rollout_roi.records import (
    DIRECT_MODE,
    SAVINGS_MODES,
    InvestmentInputs,
    PortfolioEntry,
    PortfolioState,
    QualitativeFlags,
    SavingsInputs,
    ScenarioInputs,
)
from rollout_roi.scenarios import ProjectState, load_project, scenario_color


PROJECT_SCHEMA_VERSION = 2
PORTFOLIO_SCHEMA_VERSION = 1
PROJECT_TYPE = "project"
PORTFOLIO_TYPE = "portfolio"

PROJECT_KEYS = {
    "type",
    "schema_version",
    "version",
    "name",
    "created_at",
    "projectTitle",
    "projectDescription",
    "analysisPeriod",
    "darkMode",
    "scenarios",
}
PORTFOLIO_KEYS = {
    "type",
    "schema_version",
    "version",
    "name",
    "created_at",
    "portfolioName",
    "portfolioDescription",
    "departmentAnnualSalary",
    "entries",
}
SCENARIO_KEYS = {"id", "name", "color", "savings", "investment", "qualitative", "costBreakdownLocked"}
V1_SCENARIO_KEYS = {"id", "name", "color", "currentState", "efficiency", "investment", "qualitative"}


class SchemaError(ValueError):
    """Raised when an imported file is structurally unusable."""


def _as_float(value: Any, default: float, key: str, warnings: list[str]) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        number = math.nan
    if not math.isfinite(number):
        warnings.append(f"{key} invalid and reset to default.")
        return float(default)
    return number


def _as_bool(value: Any, default: bool, key: str, warnings: list[str]) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        txt = value.strip().lower()
        if txt in {"1", "true", "yes", "y", "on"}:
            return True
        if txt in {"0", "false", "no", "n", "off"}:
            return False
    warnings.append(f"{key} invalid and reset to default.")
    return bool(default)


def _merge(defaults: dict, raw: Any, prefix: str, unknown_keys: list[str]) -> dict:
    merged = deepcopy(defaults)
    if not isinstance(raw, dict):
        return merged
    for k, v in raw.items():
        if k in merged:
            merged[k] = v
        else:
            unknown_keys.append(f"{prefix}.{k}")
    return merged


def migrate_savings_record(raw: Any, prefix: str = "savings") -> tuple[SavingsInputs, list[str], list[str]]:
    """Clamp a raw savings record into a valid ``SavingsInputs``."""
    warnings: list[str] = []
    unknown_keys: list[str] = []
    data = _merge(DEFAULT_SAVINGS, raw, prefix, unknown_keys)

    data["mode"] = str(data.get("mode", DIRECT_MODE))
    if data["mode"] not in SAVINGS_MODES:
        warnings.append(f"{prefix}.mode invalid; reset to {DIRECT_MODE}.")
        data["mode"] = DIRECT_MODE
    data["unitName"] = str(data.get("unitName") or DEFAULT_SAVINGS["unitName"])

    for key in (
        "referenceUnits",
        "directSavingsPerUnit",
        "currentCrewSize",
        "proposedCrewSize",
        "currentTimePerUnit",
        "proposedTimePerUnit",
        "hourlyRate",
        "additionalSavingsPerUnit",
    ):
        data[key] = max(0.0, _as_float(data[key], DEFAULT_SAVINGS[key], f"{prefix}.{key}", warnings))

    data["utilizationPercent"] = float(
        min(1.0, max(0.0, _as_float(data["utilizationPercent"], 1.0, f"{prefix}.utilizationPercent", warnings)))
    )
    ramp = _as_float(data["adoptionRampMonths"], DEFAULT_SAVINGS["adoptionRampMonths"], f"{prefix}.adoptionRampMonths", warnings)
    data["adoptionRampMonths"] = int(max(1, round(ramp)))

    return SavingsInputs.from_record(data), warnings, unknown_keys


def _migrate_investment(raw: Any, prefix: str, warnings: list[str], unknown_keys: list[str]) -> InvestmentInputs:
    data = _merge(DEFAULT_INVESTMENT, raw, prefix, unknown_keys)
    for key in DEFAULT_INVESTMENT:
        data[key] = max(0.0, _as_float(data[key], DEFAULT_INVESTMENT[key], f"{prefix}.{key}", warnings))
    data["toolLifespanMonths"] = int(round(data["toolLifespanMonths"]))
    return InvestmentInputs.from_record(data)


def _migrate_qualitative(raw: Any, prefix: str, warnings: list[str], unknown_keys: list[str]) -> QualitativeFlags:
    data = _merge(DEFAULT_QUALITATIVE, raw, prefix, unknown_keys)
    for key in DEFAULT_QUALITATIVE:
        data[key] = _as_bool(data[key], DEFAULT_QUALITATIVE[key], f"{prefix}.{key}", warnings)
    return QualitativeFlags.from_record(data)


def _v1_number(record: dict, key: str, warnings: list[str] | None, prefix: str = "currentState") -> float:
    return _as_float(record.get(key, 0) or 0, 0.0, f"{prefix}.{key}", warnings if warnings is not None else [])


def v1_monthly_labor_cost(current_state: dict, warnings: list[str] | None = None) -> float:
    """Monthly labor cost of the older hours-based model."""
    workers = _v1_number(current_state, "workers", warnings)
    rate = _v1_number(current_state, "hourlyRate", warnings)
    hours = _v1_number(current_state, "hoursPerWeek", warnings)
    return workers * rate * hours * WEEKS_PER_MONTH


def v1_monthly_hours(current_state: dict, warnings: list[str] | None = None, prefix: str = "currentState") -> float:
    workers = _v1_number(current_state, "workers", warnings, prefix)
    hours = _v1_number(current_state, "hoursPerWeek", warnings, prefix)
    return workers * hours * WEEKS_PER_MONTH


def is_v1_scenario(raw: Any) -> bool:
    return isinstance(raw, dict) and "currentState" in raw and "savings" not in raw


def migrate_v1_scenario(raw: dict, index: int = 0) -> tuple[ScenarioInputs, list[str], list[str]]:
    """Convert an hours-based scenario into a direct-rate scenario worth the same per month.

    The older model priced a whole team: labor and rework costs reduced by
    fractional efficiency gains, plus extra revenue. That monthly value is
    carried over as the savings of a single reference unit.
    """
    warnings: list[str] = []
    unknown_keys = [f"scenario.{k}" for k in raw if k not in V1_SCENARIO_KEYS]
    current = raw.get("currentState") if isinstance(raw.get("currentState"), dict) else {}
    efficiency = raw.get("efficiency") if isinstance(raw.get("efficiency"), dict) else {}
    old_investment = raw.get("investment") if isinstance(raw.get("investment"), dict) else {}

    def efficiency_number(key: str) -> float:
        return _as_float(efficiency.get(key, 0) or 0, 0.0, f"efficiency.{key}", warnings)

    labor = v1_monthly_labor_cost(current, warnings)
    rework = labor * _v1_number(current, "errorRate", warnings)
    direct_rate = (
        labor * efficiency_number("timeSavings")
        + rework * efficiency_number("errorReduction")
        + efficiency_number("additionalMonthlyRevenue")
    )
    savings, w, u = migrate_savings_record(
        {
            "mode": DIRECT_MODE,
            "referenceUnits": 1,
            "directSavingsPerUnit": direct_rate,
            "adoptionRampMonths": efficiency.get("adoptionRampMonths", DEFAULT_SAVINGS["adoptionRampMonths"]),
        }
    )
    warnings.extend(w)
    unknown_keys.extend(u)

    investment_raw = {k: v for k, v in old_investment.items() if k in DEFAULT_INVESTMENT}
    if "upfrontCost" in old_investment and "assemblyCost" not in old_investment:
        investment_raw["assemblyCost"] = old_investment["upfrontCost"]
    investment = _migrate_investment(investment_raw, "investment", warnings, unknown_keys)
    qualitative = _migrate_qualitative(raw.get("qualitative"), "qualitative", warnings, unknown_keys)
    if _v1_number(current, "monthlyOperationalCosts", warnings):
        warnings.append("currentState.monthlyOperationalCosts has no equivalent in schema v2 and was ignored.")

    name = str(raw.get("name") or f"Scenario {index + 1}")
    warnings.append(f"Scenario '{name}' migrated from the hours-based model to a direct savings rate.")
    scenario = ScenarioInputs(
        id=str(raw.get("id") or f"scenario-{index + 1}"),
        name=name,
        color=str(raw.get("color") or scenario_color(index)),
        savings=savings,
        investment=investment,
        qualitative=qualitative,
        cost_breakdown_locked=False,
    )
    return scenario, warnings, unknown_keys


def migrate_scenario_record(raw: Any, index: int = 0) -> tuple[ScenarioInputs, list[str], list[str]]:
    if not isinstance(raw, dict):
        raise SchemaError(f"scenarios[{index}] is not an object.")
    if is_v1_scenario(raw):
        return migrate_v1_scenario(raw, index)
    if "savings" not in raw:
        raise SchemaError(f"scenarios[{index}] has no savings definition.")

    warnings: list[str] = []
    unknown_keys = [f"scenario.{k}" for k in raw if k not in SCENARIO_KEYS]
    savings, w, u = migrate_savings_record(raw.get("savings"))
    warnings.extend(w)
    unknown_keys.extend(u)
    investment = _migrate_investment(raw.get("investment"), "investment", warnings, unknown_keys)
    qualitative = _migrate_qualitative(raw.get("qualitative"), "qualitative", warnings, unknown_keys)
    scenario = ScenarioInputs(
        id=str(raw.get("id") or f"scenario-{index + 1}"),
        name=str(raw.get("name") or f"Scenario {index + 1}"),
        color=str(raw.get("color") or scenario_color(index)),
        savings=savings,
        investment=investment,
        qualitative=qualitative,
        cost_breakdown_locked=_as_bool(raw.get("costBreakdownLocked", False), False, "costBreakdownLocked", warnings),
    )
    return scenario, warnings, unknown_keys


def _payload_version(payload: dict) -> Any:
    return payload.get("schema_version", payload.get("version"))


def _clamp_period(value: Any, warnings: list[str]) -> int:
    period = int(round(_as_float(value, DEFAULT_ANALYSIS_PERIOD, "analysisPeriod", warnings)))
    clamped = int(min(MAX_ANALYSIS_PERIOD, max(MIN_ANALYSIS_PERIOD, period)))
    if clamped != period:
        warnings.append(f"analysisPeriod {period} clamped to {clamped}.")
    return clamped


def migrate_project_payload(payload: Any) -> tuple[ProjectState, list[str], list[str]]:
    """Parse an imported project payload (bundle or bare legacy file) into a ``ProjectState``."""
    if not isinstance(payload, dict):
        raise SchemaError("Project file is not a JSON object.")
    if payload.get("type", PROJECT_TYPE) != PROJECT_TYPE:
        raise SchemaError(f"Expected a project file, got type={payload.get('type')!r}.")
    raw_scenarios = payload.get("scenarios")
    if not isinstance(raw_scenarios, list) or not raw_scenarios:
        raise SchemaError("Project file has no scenarios.")

    warnings: list[str] = []
    unknown_keys = [k for k in payload if k not in PROJECT_KEYS]
    scenarios: list[ScenarioInputs] = []
    seen_ids: set[str] = set()
    for idx, raw in enumerate(raw_scenarios):
        scenario, w, u = migrate_scenario_record(raw, idx)
        if scenario.id in seen_ids:
            warnings.append(f"Duplicate scenario id {scenario.id!r} renamed.")
            scenario = replace(scenario, id=f"{scenario.id}-{idx + 1}")
        seen_ids.add(scenario.id)
        scenarios.append(scenario)
        warnings.extend(w)
        unknown_keys.extend(u)

    version = _payload_version(payload)
    if version != PROJECT_SCHEMA_VERSION:
        warnings.append(f"Imported schema_version={version}; migrated to schema_version={PROJECT_SCHEMA_VERSION}.")

    state = load_project(
        scenarios,
        _clamp_period(payload.get("analysisPeriod", DEFAULT_ANALYSIS_PERIOD), warnings),
        project_title=str(payload.get("projectTitle", "") or ""),
        project_description=str(payload.get("projectDescription", "") or ""),
    )
    return state, warnings, sorted(set(unknown_keys))


def _entry_period(value: Any, idx: int, warnings: list[str]) -> int:
    period = int(round(_as_float(value, DEFAULT_ANALYSIS_PERIOD, f"entries[{idx}].analysisPeriod", warnings)))
    clamped = min(MAX_ANALYSIS_PERIOD, max(1, period))
    if clamped != period:
        warnings.append(f"entries[{idx}].analysisPeriod {period} clamped to {clamped}.")
    return clamped


def _backfill_window(entry: dict, idx: int, warnings: list[str]) -> None:
    if not is_month_key(entry.get("startMonth")):
        entry["startMonth"] = current_month_key()
        warnings.append(f"entries[{idx}].startMonth missing; defaulted to {entry['startMonth']}.")
    if not is_month_key(entry.get("endMonth")):
        period = _entry_period(entry.get("analysisPeriod", DEFAULT_ANALYSIS_PERIOD), idx, [])
        entry["endMonth"] = add_months(entry["startMonth"], max(0, period - 1))
        warnings.append(f"entries[{idx}].endMonth missing; defaulted to {entry['endMonth']}.")


def _migrate_portfolio_entry(raw: Any, idx: int, warnings: list[str], unknown_keys: list[str]) -> PortfolioEntry:
    if not isinstance(raw, dict):
        raise SchemaError(f"entries[{idx}] is not an object.")
    if "scenario" not in raw:
        raise SchemaError(f"entries[{idx}] has no scenario.")
    entry = dict(raw)
    _backfill_window(entry, idx, warnings)

    scenario, w, u = migrate_scenario_record(entry["scenario"], idx)
    warnings.extend(w)
    unknown_keys.extend(u)

    period = _entry_period(entry.get("analysisPeriod", DEFAULT_ANALYSIS_PERIOD), idx, warnings)
    if "actualUnits" not in entry and "estimatedHours" in entry:
        # Hours-based entries: volume is hours worked, reference is the baseline team's hours over the period.
        baseline_state = entry.get("baselineCurrentState") if isinstance(entry.get("baselineCurrentState"), dict) else {}
        baseline_hours = v1_monthly_hours(baseline_state, warnings, f"entries[{idx}].baselineCurrentState") * period
        baseline = SavingsInputs(
            basis=scenario.savings.basis,
            unit_name="hour",
            reference_units=baseline_hours,
            additional_savings_per_unit=scenario.savings.additional_savings_per_unit,
            utilization_percent=scenario.savings.utilization_percent,
            adoption_ramp_months=scenario.savings.adoption_ramp_months,
        )
        actual_units = max(0.0, _as_float(entry["estimatedHours"], 0.0, f"entries[{idx}].estimatedHours", warnings))
        warnings.append(f"entries[{idx}] migrated from estimatedHours to actualUnits.")
    else:
        if "baselineSavings" in entry:
            baseline, w, u = migrate_savings_record(entry["baselineSavings"], f"entries[{idx}].baselineSavings")
            warnings.extend(w)
            unknown_keys.extend(u)
        else:
            baseline = scenario.savings
        actual_units = max(
            0.0, _as_float(entry.get("actualUnits", baseline.reference_units), 0.0, f"entries[{idx}].actualUnits", warnings)
        )

    tool_count = int(max(1, round(_as_float(entry.get("toolCount", 1), 1, f"entries[{idx}].toolCount", warnings))))
    migrated = PortfolioEntry(
        id=str(entry.get("id") or f"portfolio-entry-{idx + 1}"),
        project_name=str(entry.get("projectName", "") or "Untitled Project"),
        scenario_name=str(entry.get("scenarioName") or scenario.name),
        actual_units=actual_units,
        tool_count=tool_count,
        start_month=entry["startMonth"],
        end_month=entry["endMonth"],
        scenario=scenario,
        baseline_savings=baseline,
        analysis_period=period,
        exclude_design_controls=_as_bool(entry.get("excludeDesignControls", False), False, "excludeDesignControls", warnings),
        exclude_training=_as_bool(entry.get("excludeTraining", False), False, "excludeTraining", warnings),
        source_file_name=str(entry.get("sourceFileName", "") or ""),
        hidden=_as_bool(entry.get("hidden", False), False, "hidden", warnings),
    )
    try:
        validate_entry(migrated)
    except ValueError as exc:
        raise SchemaError(f"entries[{idx}]: {exc}") from exc
    return migrated


def migrate_portfolio_payload(payload: Any) -> tuple[PortfolioState, list[str], list[str]]:
    if not isinstance(payload, dict):
        raise SchemaError("Portfolio file is not a JSON object.")
    if payload.get("type", PORTFOLIO_TYPE) != PORTFOLIO_TYPE:
        raise SchemaError(f"Expected a portfolio file, got type={payload.get('type')!r}.")
    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, list):
        raise SchemaError("Portfolio file has no entries list.")

    warnings: list[str] = []
    unknown_keys = [k for k in payload if k not in PORTFOLIO_KEYS]
    entries: list[PortfolioEntry] = []
    seen_ids: set[str] = set()
    for idx, raw in enumerate(raw_entries):
        entry = _migrate_portfolio_entry(raw, idx, warnings, unknown_keys)
        if entry.id in seen_ids:
            warnings.append(f"Duplicate entry id {entry.id!r} renamed.")
            entry = replace(entry, id=f"{entry.id}-{idx + 1}")
        seen_ids.add(entry.id)
        entries.append(entry)

    version = _payload_version(payload)
    if version != PORTFOLIO_SCHEMA_VERSION:
        warnings.append(f"Imported schema_version={version}; migrated to schema_version={PORTFOLIO_SCHEMA_VERSION}.")

    salary = _as_float(payload.get("departmentAnnualSalary", 0.0), 0.0, "departmentAnnualSalary", warnings)
    state = load_portfolio(
        entries,
        department_annual_salary=salary,
        portfolio_name=str(payload.get("portfolioName", "") or ""),
        portfolio_description=str(payload.get("portfolioDescription", "") or ""),
    )
    return state, warnings, sorted(set(unknown_keys))
