"""Per-unit savings rate derivation for direct and crew/time savings bases."""

from __future__ import annotations

from rollout_roi.records import CrewTimeComparison, DirectRate, SavingsInputs


def labor_cost_per_unit(crew_size: float, minutes_per_unit: float, hourly_rate: float) -> float:
    return crew_size * minutes_per_unit / 60 * hourly_rate


def labor_savings_per_unit(basis: CrewTimeComparison) -> float:
    if basis.current_time_per_unit <= 0:
        return 0.0
    current = labor_cost_per_unit(basis.current_crew_size, basis.current_time_per_unit, basis.hourly_rate)
    proposed = labor_cost_per_unit(basis.proposed_crew_size, basis.proposed_time_per_unit, basis.hourly_rate)
    return current - proposed


def compute_savings_per_unit(savings: SavingsInputs) -> float:
    """Return the full-adoption $/unit/month rate, clamped at zero.

    A proposal that costs more per unit than today is reported as no savings
    rather than a negative rate.
    """
    basis = savings.basis
    if isinstance(basis, DirectRate):
        base = basis.direct_savings_per_unit
    else:
        base = labor_savings_per_unit(basis)
    return max(0.0, base + savings.additional_savings_per_unit)
