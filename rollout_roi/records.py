"""Typed scenario, result, and portfolio records with flat JSON round-tripping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from rollout_roi.defaults import (
    DEFAULT_ANALYSIS_PERIOD,
    DEFAULT_DEPARTMENT_ANNUAL_SALARY,
    DEFAULT_INVESTMENT,
    DEFAULT_QUALITATIVE,
    DEFAULT_SAVINGS,
)


DIRECT_MODE = "direct"
TIME_BASED_MODE = "time-based"
SAVINGS_MODES = (DIRECT_MODE, TIME_BASED_MODE)


def _num(record: dict, key: str, defaults: dict) -> float:
    return float(record.get(key, defaults[key]))


def _int(record: dict, key: str, defaults: dict) -> int:
    return int(record.get(key, defaults[key]))


@dataclass(frozen=True)
class DirectRate:
    """Flat $/unit/month savings entered directly."""

    direct_savings_per_unit: float = 0.0

    mode: ClassVar[str] = DIRECT_MODE


@dataclass(frozen=True)
class CrewTimeComparison:
    """Before/after crew and minutes-per-unit comparison priced at an hourly rate."""

    current_crew_size: float = 0.0
    proposed_crew_size: float = 0.0
    current_time_per_unit: float = 0.0
    proposed_time_per_unit: float = 0.0
    hourly_rate: float = 0.0

    mode: ClassVar[str] = TIME_BASED_MODE


SavingsBasis = Union[DirectRate, CrewTimeComparison]


@dataclass(frozen=True)
class SavingsInputs:
    basis: SavingsBasis = field(default_factory=DirectRate)
    unit_name: str = "unit"
    reference_units: float = 1.0
    additional_savings_per_unit: float = 0.0
    utilization_percent: float = 1.0
    adoption_ramp_months: int = 6

    @property
    def mode(self) -> str:
        return self.basis.mode

    def to_record(self) -> dict[str, Any]:
        direct = self.basis if isinstance(self.basis, DirectRate) else DirectRate()
        crew = self.basis if isinstance(self.basis, CrewTimeComparison) else CrewTimeComparison()
        return {
            "mode": self.mode,
            "unitName": self.unit_name,
            "referenceUnits": self.reference_units,
            "directSavingsPerUnit": direct.direct_savings_per_unit,
            "currentCrewSize": crew.current_crew_size,
            "proposedCrewSize": crew.proposed_crew_size,
            "currentTimePerUnit": crew.current_time_per_unit,
            "proposedTimePerUnit": crew.proposed_time_per_unit,
            "hourlyRate": crew.hourly_rate,
            "additionalSavingsPerUnit": self.additional_savings_per_unit,
            "utilizationPercent": self.utilization_percent,
            "adoptionRampMonths": self.adoption_ramp_months,
        }

    @classmethod
    def from_record(cls, record: dict) -> SavingsInputs:
        d = DEFAULT_SAVINGS
        mode = str(record.get("mode", d["mode"]))
        if mode == DIRECT_MODE:
            basis: SavingsBasis = DirectRate(_num(record, "directSavingsPerUnit", d))
        elif mode == TIME_BASED_MODE:
            basis = CrewTimeComparison(
                current_crew_size=_num(record, "currentCrewSize", d),
                proposed_crew_size=_num(record, "proposedCrewSize", d),
                current_time_per_unit=_num(record, "currentTimePerUnit", d),
                proposed_time_per_unit=_num(record, "proposedTimePerUnit", d),
                hourly_rate=_num(record, "hourlyRate", d),
            )
        else:
            raise ValueError(f"Unsupported savings mode: {mode}")
        return cls(
            basis=basis,
            unit_name=str(record.get("unitName", d["unitName"])),
            reference_units=_num(record, "referenceUnits", d),
            additional_savings_per_unit=_num(record, "additionalSavingsPerUnit", d),
            utilization_percent=_num(record, "utilizationPercent", d),
            adoption_ramp_months=_int(record, "adoptionRampMonths", d),
        )


@dataclass(frozen=True)
class InvestmentInputs:
    assembly_cost: float = 0.0
    design_cost: float = 0.0
    controls_cost: float = 0.0
    monthly_recurring_cost: float = 0.0
    training_cost: float = 0.0
    deployment_cost: float = 0.0
    tool_lifespan_months: int = 0

    @property
    def upfront_cost(self) -> float:
        return self.assembly_cost + self.design_cost + self.controls_cost

    @property
    def one_time_cost(self) -> float:
        return self.upfront_cost + self.training_cost + self.deployment_cost

    @property
    def redeployment_cost(self) -> float:
        """Cost of rebuilding and redeploying a tool at end of life."""
        return self.assembly_cost + self.design_cost + self.controls_cost + self.deployment_cost

    def to_record(self) -> dict[str, Any]:
        return {
            "assemblyCost": self.assembly_cost,
            "designCost": self.design_cost,
            "controlsCost": self.controls_cost,
            "monthlyRecurringCost": self.monthly_recurring_cost,
            "trainingCost": self.training_cost,
            "deploymentCost": self.deployment_cost,
            "toolLifespanMonths": self.tool_lifespan_months,
        }

    @classmethod
    def from_record(cls, record: dict) -> InvestmentInputs:
        d = DEFAULT_INVESTMENT
        return cls(
            assembly_cost=_num(record, "assemblyCost", d),
            design_cost=_num(record, "designCost", d),
            controls_cost=_num(record, "controlsCost", d),
            monthly_recurring_cost=_num(record, "monthlyRecurringCost", d),
            training_cost=_num(record, "trainingCost", d),
            deployment_cost=_num(record, "deploymentCost", d),
            tool_lifespan_months=_int(record, "toolLifespanMonths", d),
        )


@dataclass(frozen=True)
class QualitativeFlags:
    safety_critical: bool = False
    quality_critical: bool = False
    operations_critical: bool = False

    def active_labels(self) -> list[str]:
        labels = []
        if self.safety_critical:
            labels.append("Safety Critical")
        if self.quality_critical:
            labels.append("Quality Critical")
        if self.operations_critical:
            labels.append("Operations Critical")
        return labels

    def to_record(self) -> dict[str, Any]:
        return {
            "safetyCritical": self.safety_critical,
            "qualityCritical": self.quality_critical,
            "operationsCritical": self.operations_critical,
        }

    @classmethod
    def from_record(cls, record: dict) -> QualitativeFlags:
        d = DEFAULT_QUALITATIVE
        return cls(
            safety_critical=bool(record.get("safetyCritical", d["safetyCritical"])),
            quality_critical=bool(record.get("qualityCritical", d["qualityCritical"])),
            operations_critical=bool(record.get("operationsCritical", d["operationsCritical"])),
        )


@dataclass(frozen=True)
class ScenarioInputs:
    """One "what if" option: savings definition, investment, and flags."""

    id: str
    name: str
    color: str
    savings: SavingsInputs = field(default_factory=SavingsInputs)
    investment: InvestmentInputs = field(default_factory=InvestmentInputs)
    qualitative: QualitativeFlags = field(default_factory=QualitativeFlags)
    cost_breakdown_locked: bool = False

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "savings": self.savings.to_record(),
            "investment": self.investment.to_record(),
            "qualitative": self.qualitative.to_record(),
            "costBreakdownLocked": self.cost_breakdown_locked,
        }

    @classmethod
    def from_record(cls, record: dict) -> ScenarioInputs:
        return cls(
            id=str(record["id"]),
            name=str(record["name"]),
            color=str(record["color"]),
            savings=SavingsInputs.from_record(record.get("savings") or {}),
            investment=InvestmentInputs.from_record(record.get("investment") or {}),
            qualitative=QualitativeFlags.from_record(record.get("qualitative") or {}),
            cost_breakdown_locked=bool(record.get("costBreakdownLocked", False)),
        )


@dataclass(frozen=True)
class MonthlyBreakdown:
    month: int
    adoption_rate: float
    monthly_savings: float
    monthly_investment_cost: float
    cumulative_savings: float
    cumulative_investment: float
    net_position: float

    def to_record(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "adoptionRate": self.adoption_rate,
            "monthlySavings": self.monthly_savings,
            "monthlyInvestmentCost": self.monthly_investment_cost,
            "cumulativeSavings": self.cumulative_savings,
            "cumulativeInvestment": self.cumulative_investment,
            "netPosition": self.net_position,
        }


@dataclass(frozen=True)
class ScenarioResults:
    """Output of one simulation run."""

    scenario_id: str
    scenario_name: str
    color: str
    qualitative: QualitativeFlags
    monthly_breakdowns: tuple[MonthlyBreakdown, ...]
    break_even_month: int | None
    year1_roi: float
    # Net position at the final simulated month, whatever the horizon length.
    three_year_net_savings: float
    total_investment: float
    savings_per_unit: float
    monthly_savings_at_full_adoption: float

    @property
    def analysis_period(self) -> int:
        return len(self.monthly_breakdowns)

    @property
    def final_month(self) -> MonthlyBreakdown | None:
        return self.monthly_breakdowns[-1] if self.monthly_breakdowns else None

    def to_record(self) -> dict[str, Any]:
        return {
            "scenarioId": self.scenario_id,
            "scenarioName": self.scenario_name,
            "color": self.color,
            "qualitative": self.qualitative.to_record(),
            "monthlyBreakdowns": [m.to_record() for m in self.monthly_breakdowns],
            "breakEvenMonth": self.break_even_month,
            "year1ROI": self.year1_roi,
            "threeYearNetSavings": self.three_year_net_savings,
            "totalInvestment": self.total_investment,
            "savingsPerUnit": self.savings_per_unit,
            "monthlySavingsAtFullAdoption": self.monthly_savings_at_full_adoption,
        }


@dataclass(frozen=True)
class PortfolioEntry:
    """A real deployment of one scenario with its own volume and calendar window."""

    id: str
    project_name: str
    scenario_name: str
    actual_units: float
    tool_count: int
    start_month: str
    end_month: str
    scenario: ScenarioInputs
    baseline_savings: SavingsInputs
    analysis_period: int = DEFAULT_ANALYSIS_PERIOD
    exclude_design_controls: bool = False
    exclude_training: bool = False
    source_file_name: str = ""
    hidden: bool = False

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectName": self.project_name,
            "scenarioName": self.scenario_name,
            "actualUnits": self.actual_units,
            "toolCount": self.tool_count,
            "excludeDesignControls": self.exclude_design_controls,
            "excludeTraining": self.exclude_training,
            "hidden": self.hidden,
            "startMonth": self.start_month,
            "endMonth": self.end_month,
            "scenario": self.scenario.to_record(),
            "baselineSavings": self.baseline_savings.to_record(),
            "analysisPeriod": self.analysis_period,
            "sourceFileName": self.source_file_name,
        }


@dataclass(frozen=True)
class PortfolioState:
    entries: tuple[PortfolioEntry, ...] = ()
    department_annual_salary: float = DEFAULT_DEPARTMENT_ANNUAL_SALARY
    portfolio_name: str = ""
    portfolio_description: str = ""

    def to_record(self) -> dict[str, Any]:
        return {
            "portfolioName": self.portfolio_name,
            "portfolioDescription": self.portfolio_description,
            "departmentAnnualSalary": self.department_annual_salary,
            "entries": [e.to_record() for e in self.entries],
        }
