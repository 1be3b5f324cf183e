"""Plotly figure builders for the dashboard."""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from rollout_roi.model import results_frame
from rollout_roi.records import ScenarioResults


def cumulative_chart(results: ScenarioResults) -> go.Figure:
    df = results_frame(results)
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=df["Month_Number"], y=df["Cumulative Savings"], name="Cumulative Savings"))
    fig.add_trace(
        go.Scatter(
            x=df["Month_Number"],
            y=df["Cumulative Investment"],
            name="Cumulative Investment",
            line=dict(dash="dash"),
        )
    )
    if results.break_even_month is not None:
        fig.add_vline(x=results.break_even_month, line_dash="dot", annotation_text=f"Break-even M{results.break_even_month}")
    fig.update_layout(title=f"Cumulative Savings vs Investment: {results.scenario_name}", xaxis_title="Month")
    return fig


def monthly_savings_chart(results_list: list[ScenarioResults]) -> go.Figure:
    frames = []
    for r in results_list:
        df = results_frame(r)[["Month_Number", "Monthly Savings"]].copy()
        df["Scenario"] = r.scenario_name
        frames.append(df)
    data = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=["Month_Number", "Monthly Savings", "Scenario"])
    color_map = {r.scenario_name: r.color for r in results_list}
    fig = px.bar(
        data,
        x="Month_Number",
        y="Monthly Savings",
        color="Scenario",
        barmode="group",
        color_discrete_map=color_map,
        title="Monthly Savings",
    )
    fig.update_layout(xaxis_title="Month")
    return fig


def net_position_chart(results_list: list[ScenarioResults]) -> go.Figure:
    fig = go.Figure()
    for r in results_list:
        df = results_frame(r)
        fig.add_trace(go.Scatter(x=df["Month_Number"], y=df["Net Position"], name=r.scenario_name, line=dict(color=r.color)))
    fig.add_hline(y=0, line_dash="dot")
    fig.update_layout(title="Net Position by Scenario", xaxis_title="Month")
    return fig


def _melt_timeline(timeline: pd.DataFrame, names: dict[str, str]) -> pd.DataFrame:
    melt = timeline.reset_index().melt(id_vars=["Month", "Label"], var_name="Entry", value_name="Value")
    melt["Entry"] = melt["Entry"].map(lambda k: names.get(k, k))
    return melt


def portfolio_savings_chart(timeline: pd.DataFrame, names: dict[str, str]) -> go.Figure:
    """Stacked monthly savings per entry across the calendar timeline."""
    if timeline.empty:
        return go.Figure().update_layout(title="Portfolio Monthly Savings")
    melt = _melt_timeline(timeline, names)
    return px.area(melt, x="Label", y="Value", color="Entry", title="Portfolio Monthly Savings")


def portfolio_net_chart(timeline: pd.DataFrame, names: dict[str, str]) -> go.Figure:
    if timeline.empty:
        return go.Figure().update_layout(title="Portfolio Net Position")
    melt = _melt_timeline(timeline, names)
    fig = px.bar(melt, x="Label", y="Value", color="Entry", title="Portfolio Net Position")
    fig.update_layout(barmode="relative")
    return fig
