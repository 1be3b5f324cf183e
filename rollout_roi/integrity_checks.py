"""Identity and roll-forward checks on the monthly results table."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from rollout_roi.formatting import format_month
from rollout_roi.records import ScenarioInputs


def _finding(check: str, max_abs_delta: float, month: str, lhs_name: str, rhs_name: str) -> dict[str, Any]:
    return {
        "Check": check,
        "Max Abs Delta": float(max_abs_delta),
        "Month of Max Delta": month,
        "LHS": lhs_name,
        "RHS": rhs_name,
    }


def _month_of_max_delta(df: pd.DataFrame, delta: np.ndarray) -> str:
    if len(delta) == 0:
        return ""
    idx = int(np.argmax(np.abs(delta)))
    if "Month_Number" in df.columns and idx < len(df):
        return format_month(int(df.iloc[idx]["Month_Number"]))
    return str(idx)


def _check_series_identity(
    findings: list[dict[str, Any]],
    df: pd.DataFrame,
    check_name: str,
    lhs_name: str,
    rhs_name: str,
    lhs: np.ndarray,
    rhs: np.ndarray,
    tol: float,
) -> None:
    delta = np.nan_to_num(np.asarray(lhs, dtype=float) - np.asarray(rhs, dtype=float), nan=0.0)
    if len(delta) == 0:
        return
    max_abs = float(np.max(np.abs(delta)))
    if max_abs > float(tol):
        findings.append(_finding(check_name, max_abs, _month_of_max_delta(df, delta), lhs_name, rhs_name))


def _check_non_decreasing(findings: list[dict[str, Any]], df: pd.DataFrame, column: str, tol: float) -> None:
    values = df[column].to_numpy(dtype=float)
    if len(values) < 2:
        return
    drops = np.minimum(0.0, np.diff(values))
    if float(drops.min()) < -float(tol):
        findings.append(
            _finding(
                f"{column} monotonic",
                float(-drops.min()),
                _month_of_max_delta(df.iloc[1:].reset_index(drop=True), drops),
                f"{column}[t]",
                f"{column}[t-1]",
            )
        )


def run_integrity_checks(df: pd.DataFrame, inputs: ScenarioInputs, tol: float = 1e-6) -> list[dict[str, Any]]:
    """Return integrity findings (empty list means all checks passed).

    ``inputs`` supplies the opening one-time investment the cumulative
    investment column is seeded with.
    """
    if not isinstance(df, pd.DataFrame) or df.empty:
        return [{"Check": "Dataframe not available", "Max Abs Delta": np.nan, "Month of Max Delta": "", "LHS": "", "RHS": ""}]

    findings: list[dict[str, Any]] = []
    cum_savings = df["Cumulative Savings"].to_numpy(dtype=float)
    cum_investment = df["Cumulative Investment"].to_numpy(dtype=float)

    _check_series_identity(
        findings,
        df,
        "Net position identity",
        "Net Position",
        "Cumulative Savings - Cumulative Investment",
        df["Net Position"].to_numpy(),
        cum_savings - cum_investment,
        tol,
    )

    prev_savings = np.concatenate(([0.0], cum_savings[:-1]))
    _check_series_identity(
        findings,
        df,
        "Cumulative savings roll-forward",
        "Cumulative Savings",
        "Prior Cumulative Savings + Monthly Savings",
        cum_savings,
        prev_savings + df["Monthly Savings"].to_numpy(dtype=float),
        tol,
    )

    opening_investment = inputs.investment.one_time_cost
    prev_investment = np.concatenate(([opening_investment], cum_investment[:-1]))
    _check_series_identity(
        findings,
        df,
        "Cumulative investment roll-forward",
        "Cumulative Investment",
        "Prior Cumulative Investment + Monthly Investment Cost",
        cum_investment,
        prev_investment + df["Monthly Investment Cost"].to_numpy(dtype=float),
        tol,
    )

    adoption = df["Adoption Rate"].to_numpy(dtype=float)
    _check_series_identity(
        findings,
        df,
        "Adoption rate bounds",
        "Adoption Rate",
        "clip(Adoption Rate, 0, 1)",
        adoption,
        np.clip(adoption, 0.0, 1.0),
        tol,
    )

    _check_non_decreasing(findings, df, "Cumulative Savings", tol)
    _check_non_decreasing(findings, df, "Cumulative Investment", tol)
    return findings
