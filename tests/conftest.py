from __future__ import annotations

import pytest

from rollout_roi.records import (
    CrewTimeComparison,
    DirectRate,
    InvestmentInputs,
    PortfolioEntry,
    QualitativeFlags,
    SavingsInputs,
    ScenarioInputs,
)
from rollout_roi.scenarios import counter_id_factory


def make_scenario(
    basis=None,
    *,
    scenario_id: str = "scenario-1",
    name: str = "Scenario 1",
    reference_units: float = 100.0,
    additional: float = 0.0,
    utilization: float = 1.0,
    ramp: int = 6,
    **investment,
) -> ScenarioInputs:
    return ScenarioInputs(
        id=scenario_id,
        name=name,
        color="#2563EB",
        savings=SavingsInputs(
            basis=basis if basis is not None else DirectRate(500.0),
            reference_units=reference_units,
            additional_savings_per_unit=additional,
            utilization_percent=utilization,
            adoption_ramp_months=ramp,
        ),
        investment=InvestmentInputs(**investment),
        qualitative=QualitativeFlags(),
    )


def make_entry(scenario: ScenarioInputs, **overrides) -> PortfolioEntry:
    fields = dict(
        id="entry-1",
        project_name="Line 4 Retrofit",
        scenario_name=scenario.name,
        actual_units=scenario.savings.reference_units,
        tool_count=1,
        start_month="2026-01",
        end_month="2028-12",
        scenario=scenario,
        baseline_savings=scenario.savings,
        analysis_period=36,
    )
    fields.update(overrides)
    return PortfolioEntry(**fields)


@pytest.fixture
def scenario_factory():
    return make_scenario


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def id_factory():
    return counter_id_factory("scenario")


@pytest.fixture
def direct_scenario() -> ScenarioInputs:
    return make_scenario()


@pytest.fixture
def costed_scenario() -> ScenarioInputs:
    return make_scenario(
        DirectRate(40.0),
        scenario_id="scenario-2",
        name="Fixture Cell",
        reference_units=50,
        utilization=0.8,
        ramp=4,
        assembly_cost=12_000.0,
        design_cost=3_000.0,
        controls_cost=2_500.0,
        training_cost=1_200.0,
        deployment_cost=800.0,
        monthly_recurring_cost=150.0,
        tool_lifespan_months=18,
    )


@pytest.fixture
def time_based_scenario() -> ScenarioInputs:
    return make_scenario(
        CrewTimeComparison(
            current_crew_size=2,
            proposed_crew_size=1,
            current_time_per_unit=30,
            proposed_time_per_unit=20,
            hourly_rate=40,
        ),
        scenario_id="scenario-3",
        name="Crew Swap",
        reference_units=200,
        additional=1.5,
        utilization=0.9,
        ramp=4,
        assembly_cost=5_000.0,
        design_cost=2_000.0,
        controls_cost=1_500.0,
        training_cost=800.0,
        deployment_cost=700.0,
        monthly_recurring_cost=150.0,
        tool_lifespan_months=12,
    )
