"""Default inputs, palette, and bounds for new scenarios and portfolios."""

from __future__ import annotations


SCENARIO_COLORS = ("#2563EB", "#F97316", "#8B5CF6", "#10B981", "#EC4899", "#F59E0B")
MAX_SCENARIOS = 6

DEFAULT_ANALYSIS_PERIOD = 36
MIN_ANALYSIS_PERIOD = 6
MAX_ANALYSIS_PERIOD = 60

# All defaults zeroed so a new scenario starts from a blank slate.
DEFAULT_SAVINGS = {
    "mode": "direct",
    "unitName": "unit",
    "referenceUnits": 1,
    "directSavingsPerUnit": 0.0,
    "currentCrewSize": 0,
    "proposedCrewSize": 0,
    "currentTimePerUnit": 0.0,
    "proposedTimePerUnit": 0.0,
    "hourlyRate": 0.0,
    "additionalSavingsPerUnit": 0.0,
    "utilizationPercent": 1.0,
    "adoptionRampMonths": 6,
}

DEFAULT_INVESTMENT = {
    "assemblyCost": 0.0,
    "designCost": 0.0,
    "controlsCost": 0.0,
    "monthlyRecurringCost": 0.0,
    "trainingCost": 0.0,
    "deploymentCost": 0.0,
    "toolLifespanMonths": 0,
}

DEFAULT_QUALITATIVE = {
    "safetyCritical": False,
    "qualityCritical": False,
    "operationsCritical": False,
}

DEFAULT_DEPARTMENT_ANNUAL_SALARY = 0.0

# Standard work week used by the overtime premium and the legacy labor model.
STANDARD_WEEKLY_HOURS = 40.0
OVERTIME_MULTIPLIER = 1.5
WEEKS_PER_MONTH = 4.33
