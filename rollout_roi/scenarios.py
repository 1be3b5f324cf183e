"""Scenario list lifecycle: factory, add/remove/duplicate, and field updates.

Every operation takes a ``ProjectState`` and returns a new one; nothing here
mutates shared state. Identifiers come from an injected ``IdFactory`` so the
simulation modules never depend on process-wide counters.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from typing import Callable
from uuid import uuid4

from rollout_roi.defaults import (
    DEFAULT_ANALYSIS_PERIOD,
    DEFAULT_INVESTMENT,
    DEFAULT_QUALITATIVE,
    DEFAULT_SAVINGS,
    MAX_ANALYSIS_PERIOD,
    MAX_SCENARIOS,
    MIN_ANALYSIS_PERIOD,
    SCENARIO_COLORS,
)
from rollout_roi.records import InvestmentInputs, QualitativeFlags, SavingsInputs, ScenarioInputs


IdFactory = Callable[[], str]


def uuid_id_factory(prefix: str) -> IdFactory:
    def _next_id() -> str:
        return f"{prefix}-{uuid4().hex[:12]}"

    return _next_id


def counter_id_factory(prefix: str, start: int = 1) -> IdFactory:
    counter = itertools.count(start)

    def _next_id() -> str:
        return f"{prefix}-{next(counter)}"

    return _next_id


def scenario_color(index: int) -> str:
    return SCENARIO_COLORS[index % len(SCENARIO_COLORS)]


def create_default_scenario(index: int = 0, id_factory: IdFactory | None = None) -> ScenarioInputs:
    """Create a zeroed scenario named and coloured by its list position."""
    next_id = id_factory or uuid_id_factory("scenario")
    return ScenarioInputs(
        id=next_id(),
        name=f"Scenario {index + 1}",
        color=scenario_color(index),
        savings=SavingsInputs.from_record(DEFAULT_SAVINGS),
        investment=InvestmentInputs.from_record(DEFAULT_INVESTMENT),
        qualitative=QualitativeFlags.from_record(DEFAULT_QUALITATIVE),
        cost_breakdown_locked=False,
    )


@dataclass(frozen=True)
class ProjectState:
    scenarios: tuple[ScenarioInputs, ...]
    active_scenario_id: str
    analysis_period: int = DEFAULT_ANALYSIS_PERIOD
    project_title: str = ""
    project_description: str = ""
    id_factory: IdFactory = field(default_factory=lambda: uuid_id_factory("scenario"), compare=False, repr=False)

    @property
    def active_scenario(self) -> ScenarioInputs:
        for s in self.scenarios:
            if s.id == self.active_scenario_id:
                return s
        return self.scenarios[0]


def new_project(id_factory: IdFactory | None = None) -> ProjectState:
    next_id = id_factory or uuid_id_factory("scenario")
    first = create_default_scenario(0, next_id)
    return ProjectState(scenarios=(first,), active_scenario_id=first.id, id_factory=next_id)


def _find(state: ProjectState, scenario_id: str) -> ScenarioInputs | None:
    return next((s for s in state.scenarios if s.id == scenario_id), None)


def _map_scenario(state: ProjectState, scenario_id: str, fn: Callable[[ScenarioInputs], ScenarioInputs]) -> ProjectState:
    if _find(state, scenario_id) is None:
        return state
    scenarios = tuple(fn(s) if s.id == scenario_id else s for s in state.scenarios)
    return replace(state, scenarios=scenarios)


def add_scenario(state: ProjectState) -> ProjectState:
    if len(state.scenarios) >= MAX_SCENARIOS:
        return state
    scenario = create_default_scenario(len(state.scenarios), state.id_factory)
    return replace(state, scenarios=state.scenarios + (scenario,), active_scenario_id=scenario.id)


def remove_scenario(state: ProjectState, scenario_id: str) -> ProjectState:
    # At least one scenario must always remain.
    if len(state.scenarios) <= 1 or _find(state, scenario_id) is None:
        return state
    remaining = tuple(s for s in state.scenarios if s.id != scenario_id)
    active = remaining[0].id if state.active_scenario_id == scenario_id else state.active_scenario_id
    return replace(state, scenarios=remaining, active_scenario_id=active)


def duplicate_scenario(state: ProjectState, scenario_id: str) -> ProjectState:
    source = _find(state, scenario_id)
    if source is None or len(state.scenarios) >= MAX_SCENARIOS:
        return state
    index = len(state.scenarios)
    copy = replace(
        source,
        id=state.id_factory(),
        name=f"{source.name} (Copy)",
        color=scenario_color(index),
    )
    return replace(state, scenarios=state.scenarios + (copy,), active_scenario_id=copy.id)


def update_scenario(state: ProjectState, scenario_id: str, **updates) -> ProjectState:
    return _map_scenario(state, scenario_id, lambda s: replace(s, **updates))


def rename_scenario(state: ProjectState, scenario_id: str, name: str) -> ProjectState:
    return update_scenario(state, scenario_id, name=name)


def update_savings(state: ProjectState, scenario_id: str, **updates) -> ProjectState:
    return _map_scenario(state, scenario_id, lambda s: replace(s, savings=replace(s.savings, **updates)))


def update_investment(state: ProjectState, scenario_id: str, **updates) -> ProjectState:
    return _map_scenario(state, scenario_id, lambda s: replace(s, investment=replace(s.investment, **updates)))


def update_qualitative(state: ProjectState, scenario_id: str, **updates) -> ProjectState:
    return _map_scenario(state, scenario_id, lambda s: replace(s, qualitative=replace(s.qualitative, **updates)))


def set_active(state: ProjectState, scenario_id: str) -> ProjectState:
    if _find(state, scenario_id) is None:
        return state
    return replace(state, active_scenario_id=scenario_id)


def set_analysis_period(state: ProjectState, period: int) -> ProjectState:
    period = int(min(MAX_ANALYSIS_PERIOD, max(MIN_ANALYSIS_PERIOD, int(period))))
    return replace(state, analysis_period=period)


def load_project(
    scenarios: list[ScenarioInputs] | tuple[ScenarioInputs, ...],
    analysis_period: int,
    project_title: str = "",
    project_description: str = "",
    id_factory: IdFactory | None = None,
) -> ProjectState:
    if not scenarios:
        raise ValueError("A project needs at least one scenario.")
    return ProjectState(
        scenarios=tuple(scenarios),
        active_scenario_id=scenarios[0].id,
        analysis_period=int(analysis_period),
        project_title=project_title,
        project_description=project_description,
        id_factory=id_factory or uuid_id_factory("scenario"),
    )
