import json
from dataclasses import replace
from pathlib import Path

import pandas as pd
import streamlit as st

from rollout_roi.charts import (
    cumulative_chart,
    monthly_savings_chart,
    net_position_chart,
    portfolio_net_chart,
    portfolio_savings_chart,
)
from rollout_roi.defaults import MAX_ANALYSIS_PERIOD, MAX_SCENARIOS, MIN_ANALYSIS_PERIOD
from rollout_roi.calendar_utils import format_month_label
from rollout_roi.formatting import format_currency, format_currency_k
from rollout_roi.formulas import get_aggregate_formulas, get_entry_formulas, get_formula_displays
from rollout_roi.integrity_checks import run_integrity_checks
from rollout_roi.metrics import compute_metrics, savings_by_year, scenario_comparison_frame
from rollout_roi.model import compute_scenarios, results_frame
from rollout_roi.persistence import (
    build_portfolio_bundle,
    build_project_bundle,
    bundle_file_name,
    dumps_bundle,
    parse_portfolio_json,
    parse_project_json,
)
from rollout_roi.portfolio import (
    add_entry,
    compute_portfolio,
    create_entry,
    remove_entry,
    reset_portfolio,
    set_department_salary,
    set_portfolio_description,
    set_portfolio_name,
    update_entry,
)
from rollout_roi.records import DIRECT_MODE, SAVINGS_MODES, CrewTimeComparison, DirectRate, ScenarioInputs
from rollout_roi.runtime_logging import (
    install_global_exception_logging,
    log_entry_rejected,
    log_import_outcome,
    log_import_rejected,
    log_integrity_findings,
    read_runtime_events,
    runtime_log_path,
)
from rollout_roi.scenarios import (
    add_scenario,
    duplicate_scenario,
    new_project,
    remove_scenario,
    rename_scenario,
    set_active,
    set_analysis_period,
    update_investment,
    update_qualitative,
    update_savings,
    update_scenario,
)
from rollout_roi.schema import SchemaError


install_global_exception_logging()

PROJECT_MODE = "Project"
PORTFOLIO_MODE = "Portfolio"


def _wkey(*parts) -> str:
    # Bumped on load/reset so widgets re-read their values from the new state.
    return "_".join([str(st.session_state.get("_state_rev", 0)), *(str(p) for p in parts)])


def _bump_state_rev() -> None:
    st.session_state["_state_rev"] = int(st.session_state.get("_state_rev", 0)) + 1


@st.cache_data(show_spinner=False)
def _compute_cached(scenario_records_json: str, analysis_period: int):
    scenarios = [ScenarioInputs.from_record(r) for r in json.loads(scenario_records_json)]
    return compute_scenarios(scenarios, analysis_period)


def _scenarios_json(project) -> str:
    return json.dumps([s.to_record() for s in project.scenarios], sort_keys=True)


def _scenario_basis_from_widgets(s: ScenarioInputs, mode: str, container) -> DirectRate | CrewTimeComparison:
    sid = s.id
    if mode == DIRECT_MODE:
        current = s.savings.basis if isinstance(s.savings.basis, DirectRate) else DirectRate()
        rate = container.number_input(
            f"Direct savings per {s.savings.unit_name} / month ($)",
            min_value=0.0,
            value=float(current.direct_savings_per_unit),
            step=10.0,
            key=_wkey(sid, "direct_rate"),
            help="Dollar savings each unit produces per month at full adoption.",
        )
        return DirectRate(rate)

    current = s.savings.basis if isinstance(s.savings.basis, CrewTimeComparison) else CrewTimeComparison()
    c1, c2 = container.columns(2)
    current_crew = c1.number_input(
        "Current crew size", min_value=0.0, value=float(current.current_crew_size), step=1.0, key=_wkey(sid, "cur_crew")
    )
    proposed_crew = c2.number_input(
        "Proposed crew size", min_value=0.0, value=float(current.proposed_crew_size), step=1.0, key=_wkey(sid, "new_crew")
    )
    current_time = c1.number_input(
        "Current minutes / unit", min_value=0.0, value=float(current.current_time_per_unit), step=1.0, key=_wkey(sid, "cur_time")
    )
    proposed_time = c2.number_input(
        "Proposed minutes / unit",
        min_value=0.0,
        value=float(current.proposed_time_per_unit),
        step=1.0,
        key=_wkey(sid, "new_time"),
    )
    hourly_rate = container.number_input(
        "Hourly rate ($)", min_value=0.0, value=float(current.hourly_rate), step=1.0, key=_wkey(sid, "rate")
    )
    return CrewTimeComparison(current_crew, proposed_crew, current_time, proposed_time, hourly_rate)


def _render_scenario_editor(project, s: ScenarioInputs):
    sid = s.id
    name = st.text_input("Scenario name", value=s.name, key=_wkey(sid, "name"))
    if name != s.name:
        project = rename_scenario(project, sid, name)

    with st.expander("Savings", expanded=True):
        mode = st.radio(
            "Savings mode",
            options=list(SAVINGS_MODES),
            index=list(SAVINGS_MODES).index(s.savings.mode),
            format_func=lambda m: "Direct $/unit" if m == DIRECT_MODE else "Crew & time comparison",
            horizontal=True,
            key=_wkey(sid, "mode"),
        )
        unit_name = st.text_input("Unit name", value=s.savings.unit_name, key=_wkey(sid, "unit"))
        basis = _scenario_basis_from_widgets(s, mode, st)
        c1, c2 = st.columns(2)
        reference_units = c1.number_input(
            "Reference units", min_value=0.0, value=float(s.savings.reference_units), step=1.0, key=_wkey(sid, "units")
        )
        additional = c2.number_input(
            "Additional savings / unit ($)",
            min_value=0.0,
            value=float(s.savings.additional_savings_per_unit),
            step=1.0,
            key=_wkey(sid, "extra"),
        )
        utilization = st.slider(
            "Utilization", min_value=0.0, max_value=1.0, value=float(s.savings.utilization_percent), key=_wkey(sid, "util")
        )
        ramp = st.slider(
            "Adoption ramp (months)", min_value=1, max_value=24, value=int(s.savings.adoption_ramp_months), key=_wkey(sid, "ramp")
        )
    project = update_savings(
        project,
        sid,
        basis=basis,
        unit_name=unit_name.strip() or "unit",
        reference_units=reference_units,
        additional_savings_per_unit=additional,
        utilization_percent=utilization,
        adoption_ramp_months=ramp,
    )

    inv = s.investment
    with st.expander("Investment", expanded=True):
        locked = st.toggle("Lock cost breakdown", value=s.cost_breakdown_locked, key=_wkey(sid, "locked"))
        c1, c2, c3 = st.columns(3)
        assembly = c1.number_input("Assembly ($)", min_value=0.0, value=float(inv.assembly_cost), step=100.0, key=_wkey(sid, "asm"))
        design = c2.number_input("Design ($)", min_value=0.0, value=float(inv.design_cost), step=100.0, key=_wkey(sid, "des"))
        controls = c3.number_input("Controls ($)", min_value=0.0, value=float(inv.controls_cost), step=100.0, key=_wkey(sid, "ctl"))
        training = c1.number_input("Training ($)", min_value=0.0, value=float(inv.training_cost), step=100.0, key=_wkey(sid, "trn"))
        deployment = c2.number_input(
            "Deployment ($)", min_value=0.0, value=float(inv.deployment_cost), step=100.0, key=_wkey(sid, "dep")
        )
        recurring = c3.number_input(
            "Monthly recurring ($)", min_value=0.0, value=float(inv.monthly_recurring_cost), step=10.0, key=_wkey(sid, "rec")
        )
        lifespan = st.number_input(
            "Tool lifespan (months, 0 = no redeployment)",
            min_value=0,
            value=int(inv.tool_lifespan_months),
            step=1,
            key=_wkey(sid, "life"),
        )
    project = update_investment(
        project,
        sid,
        assembly_cost=assembly,
        design_cost=design,
        controls_cost=controls,
        training_cost=training,
        deployment_cost=deployment,
        monthly_recurring_cost=recurring,
        tool_lifespan_months=int(lifespan),
    )
    project = update_scenario(project, sid, cost_breakdown_locked=locked)

    q = s.qualitative
    with st.expander("Qualitative", expanded=False):
        safety = st.checkbox("Safety critical", value=q.safety_critical, key=_wkey(sid, "safety"))
        quality = st.checkbox("Quality critical", value=q.quality_critical, key=_wkey(sid, "quality"))
        operations = st.checkbox("Operations critical", value=q.operations_critical, key=_wkey(sid, "ops"))
    return update_qualitative(
        project, sid, safety_critical=safety, quality_critical=quality, operations_critical=operations
    )


def _render_project_mode() -> None:
    project = st.session_state["project"]

    with st.sidebar:
        st.header("Project")
        title = st.text_input("Project title", value=project.project_title, key=_wkey("project_title"))
        description = st.text_area("Description", value=project.project_description, key=_wkey("project_description"))
        period = st.slider(
            "Analysis period (months)",
            min_value=MIN_ANALYSIS_PERIOD,
            max_value=MAX_ANALYSIS_PERIOD,
            value=int(project.analysis_period),
            key=_wkey("analysis_period"),
        )
        project = set_analysis_period(project, period)
        project = replace(project, project_title=title, project_description=description)

        st.subheader("Scenarios")
        names = {s.id: s.name for s in project.scenarios}
        active_id = st.radio(
            "Active scenario",
            options=list(names),
            index=list(names).index(project.active_scenario_id),
            format_func=lambda sid: names[sid],
            key=f"active_scenario_{len(names)}_{project.active_scenario_id}",
        )
        project = set_active(project, active_id)
        b1, b2, b3 = st.columns(3)
        at_limit = len(project.scenarios) >= MAX_SCENARIOS
        changed = None
        if b1.button("Add", disabled=at_limit, help="Add a blank scenario."):
            changed = add_scenario(project)
        if b2.button("Duplicate", disabled=at_limit, help="Copy the active scenario."):
            changed = duplicate_scenario(project, project.active_scenario_id)
        if b3.button("Remove", disabled=len(project.scenarios) <= 1, help="Remove the active scenario."):
            changed = remove_scenario(project, project.active_scenario_id)
        if changed is not None:
            st.session_state["project"] = changed
            st.rerun()

        st.subheader("Files")
        bundle = build_project_bundle(project)
        st.download_button(
            "Save Project (JSON)",
            dumps_bundle(bundle),
            file_name=bundle_file_name(bundle, "Rollout-ROI-Project"),
            mime="application/json",
        )
        uploaded = st.file_uploader("Load Project", type=["json"], key="project_upload")
        if uploaded is not None and st.session_state.get("_project_upload_id") != uploaded.file_id:
            st.session_state["_project_upload_id"] = uploaded.file_id
            try:
                project, warnings, unknown = parse_project_json(uploaded.getvalue())
            except SchemaError as exc:
                log_import_rejected("project", uploaded.name, exc)
                st.error(f"Invalid project file: {exc}")
            else:
                log_import_outcome("project", uploaded.name, warnings, unknown)
                if warnings:
                    st.warning(" | ".join(warnings))
                if unknown:
                    st.info(f"Ignored unknown keys: {', '.join(unknown)}")
                _bump_state_rev()

    st.session_state["project"] = project
    active = project.active_scenario
    editor_col, output_col = st.columns([2, 3])
    with editor_col:
        project = _render_scenario_editor(project, active)
        st.session_state["project"] = project
        active = project.active_scenario

    results_list = _compute_cached(_scenarios_json(project), int(project.analysis_period))
    active_results = next(r for r in results_list if r.scenario_id == active.id)
    metrics = compute_metrics(active_results)

    with output_col:
        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Break-even", metrics["break_even_label"])
        m2.metric("Year 1 ROI", f"{metrics['year1_roi']:.1f}%")
        m3.metric(f"{project.analysis_period}-Month Net", format_currency_k(metrics["net_savings"]))
        m4.metric("Total Investment", format_currency_k(metrics["total_investment"]))
        if metrics["qualitative_labels"]:
            st.caption(" | ".join(metrics["qualitative_labels"]))

        chart_tab, compare_tab, math_tab, table_tab = st.tabs(["Charts", "Compare", "Show the Math", "Monthly Table"])
        with chart_tab:
            st.plotly_chart(cumulative_chart(active_results), width="stretch")
            st.plotly_chart(monthly_savings_chart(results_list), width="stretch")
        with compare_tab:
            st.dataframe(scenario_comparison_frame(results_list), width="stretch", hide_index=True)
            st.plotly_chart(net_position_chart(results_list), width="stretch")
            st.dataframe(savings_by_year(active_results), width="stretch", hide_index=True)
        with math_tab:
            rows = get_formula_displays(active, project.analysis_period, cost_locked=active.cost_breakdown_locked)
            st.dataframe(
                pd.DataFrame([{"Item": r.label, "Formula": r.formula, "Values": r.substituted, "Result": r.result} for r in rows]),
                width="stretch",
                hide_index=True,
            )
        with table_tab:
            frame = results_frame(active_results)
            st.dataframe(frame, width="stretch", hide_index=True)
            st.download_button(
                "Download Monthly Table CSV",
                frame.to_csv(index=False),
                file_name=f"{active.name or 'scenario'}_monthly.csv",
                mime="text/csv",
            )

    findings = run_integrity_checks(results_frame(active_results), active)
    log_integrity_findings(active.id, findings)
    if findings:
        with st.expander(f"[!] Integrity Findings ({len(findings)})", expanded=False):
            st.dataframe(pd.DataFrame(findings), width="stretch", hide_index=True)
    else:
        st.caption("Integrity checks: passed.")


def _render_picker(portfolio):
    st.subheader("Add from Project File")
    uploaded = st.file_uploader("Project file", type=["json"], key="picker_upload")
    if uploaded is None:
        return portfolio
    try:
        source, warnings, unknown = parse_project_json(uploaded.getvalue())
    except SchemaError as exc:
        log_import_rejected("picker", uploaded.name, exc)
        st.error(f"Invalid project file: {exc}")
        return portfolio
    if warnings:
        st.warning(" | ".join(warnings))
    names = {s.id: s.name for s in source.scenarios}
    scenario_id = st.selectbox("Scenario", options=list(names), format_func=lambda sid: names[sid], key="picker_scenario")
    scenario = next(s for s in source.scenarios if s.id == scenario_id)
    c1, c2 = st.columns(2)
    project_name = c1.text_input("Project name", value=source.project_title or Path(uploaded.name).stem, key="picker_name")
    start_month = c2.text_input("Start month (YYYY-MM)", value="", key="picker_start", placeholder="this month")
    actual_units = c1.number_input(
        f"Actual {scenario.savings.unit_name}s",
        min_value=0.0,
        value=float(scenario.savings.reference_units),
        key=f"picker_units_{scenario_id}",
    )
    tool_count = c2.number_input("Tool count", min_value=1, value=1, step=1, key="picker_tools")
    exclude_dc = c1.checkbox("Exclude design & controls", key="picker_exclude_dc")
    exclude_training = c2.checkbox("Exclude training", key="picker_exclude_training")
    if st.button("Add to Portfolio"):
        try:
            entry = create_entry(
                scenario,
                project_name,
                source.analysis_period,
                start_month=start_month.strip() or None,
                actual_units=actual_units,
                tool_count=int(tool_count),
                exclude_design_controls=exclude_dc,
                exclude_training=exclude_training,
                source_file_name=uploaded.name,
            )
        except ValueError as exc:
            log_entry_rejected(exc, action="add", file=uploaded.name)
            st.error(str(exc))
        else:
            log_import_outcome("project", uploaded.name, warnings, unknown)
            portfolio = add_entry(portfolio, entry)
            st.success(f"Added {entry.project_name} / {entry.scenario_name}.")
    return portfolio


def _render_entry_editor(portfolio, er):
    entry = er.entry
    eid = entry.id
    with st.expander(f"{entry.project_name}: {entry.scenario_name}", expanded=False):
        c1, c2, c3 = st.columns(3)
        updates = {
            "actual_units": c1.number_input(
                f"Actual {entry.baseline_savings.unit_name}s", min_value=0.0, value=float(entry.actual_units), key=_wkey(eid, "units")
            ),
            "tool_count": int(c2.number_input("Tool count", min_value=1, value=int(entry.tool_count), key=_wkey(eid, "tools"))),
            "hidden": c3.checkbox("Hide", value=entry.hidden, key=_wkey(eid, "hidden")),
            "start_month": c1.text_input("Start (YYYY-MM)", value=entry.start_month, key=_wkey(eid, "start")),
            "end_month": c2.text_input("End (YYYY-MM)", value=entry.end_month, key=_wkey(eid, "end")),
            "exclude_design_controls": c3.checkbox(
                "Exclude design & controls", value=entry.exclude_design_controls, key=_wkey(eid, "xdc")
            ),
            "exclude_training": c3.checkbox("Exclude training", value=entry.exclude_training, key=_wkey(eid, "xtr")),
        }
        try:
            portfolio = update_entry(portfolio, eid, **updates)
        except ValueError as exc:
            log_entry_rejected(exc, action="update", entry_id=eid)
            st.error(str(exc))
        st.caption(
            f"{format_month_label(entry.start_month)} to {format_month_label(entry.end_month)}"
            f" | scaled value {format_currency(er.scaled_value)}"
        )
        rows = get_entry_formulas(er)
        st.dataframe(
            pd.DataFrame([{"Item": r.label, "Formula": r.formula, "Values": r.substituted, "Result": r.result} for r in rows]),
            width="stretch",
            hide_index=True,
        )
        if st.button("Remove entry", key=_wkey(eid, "remove")):
            st.session_state["portfolio"] = remove_entry(portfolio, eid)
            st.rerun()
    return portfolio


def _render_portfolio_mode() -> None:
    portfolio = st.session_state["portfolio"]

    with st.sidebar:
        st.header("Portfolio")
        name = st.text_input("Portfolio name", value=portfolio.portfolio_name, key=_wkey("portfolio_name"))
        description = st.text_area(
            "Portfolio description", value=portfolio.portfolio_description, key=_wkey("portfolio_description")
        )
        portfolio = set_portfolio_description(set_portfolio_name(portfolio, name), description)
        salary = st.number_input(
            "Department annual salary ($)",
            min_value=0.0,
            value=float(portfolio.department_annual_salary),
            step=1000.0,
            key=_wkey("department_salary"),
            help="Annual cost of the team delivering the portfolio.",
        )
        portfolio = set_department_salary(portfolio, salary)

        bundle = build_portfolio_bundle(portfolio)
        st.download_button(
            "Save Portfolio (JSON)",
            dumps_bundle(bundle),
            file_name=bundle_file_name(bundle, "Rollout-ROI-Portfolio"),
            mime="application/json",
        )
        uploaded = st.file_uploader("Load Portfolio", type=["json"], key="portfolio_upload")
        if uploaded is not None and st.session_state.get("_portfolio_upload_id") != uploaded.file_id:
            st.session_state["_portfolio_upload_id"] = uploaded.file_id
            try:
                loaded, warnings, unknown = parse_portfolio_json(uploaded.getvalue())
            except SchemaError as exc:
                log_import_rejected("portfolio", uploaded.name, exc)
                st.error(f"Invalid portfolio file: {exc}")
            else:
                log_import_outcome("portfolio", uploaded.name, warnings, unknown)
                if warnings:
                    st.warning(" | ".join(warnings))
                portfolio = loaded
                _bump_state_rev()
        if st.button("Reset Portfolio", help="Remove all entries and clear the department salary."):
            portfolio = reset_portfolio()
            _bump_state_rev()

    portfolio = _render_picker(portfolio)
    result = compute_portfolio(portfolio)

    st.subheader("Entries")
    if not result.entry_results:
        st.caption("No entries yet. Load a project file above to add one.")
    for er in result.entry_results:
        portfolio = _render_entry_editor(portfolio, er)
    st.session_state["portfolio"] = portfolio

    agg = result.aggregates
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Total Value Created", format_currency_k(agg.total_value_created))
    m2.metric("Total Investment", format_currency_k(agg.total_investment))
    m3.metric("Net Profit", format_currency_k(agg.net_profit))
    m4.metric("Department ROI", f"{agg.department_roi:.1f}%")

    names = {er.entry.id: f"{er.entry.project_name}: {er.entry.scenario_name}" for er in result.entry_results}
    st.plotly_chart(portfolio_savings_chart(result.monthly_savings_timeline, names), width="stretch")
    st.plotly_chart(portfolio_net_chart(result.net_position_timeline, names), width="stretch")
    with st.expander("Show the Math", expanded=False):
        rows = get_aggregate_formulas(result)
        st.dataframe(
            pd.DataFrame([{"Item": r.label, "Formula": r.formula, "Values": r.substituted, "Result": r.result} for r in rows]),
            width="stretch",
            hide_index=True,
        )


def _render_diagnostics() -> None:
    with st.sidebar.expander("Runtime Diagnostics", expanded=False):
        log_path = Path(runtime_log_path())
        st.caption(f"Runtime log file: `{log_path}`")
        events = read_runtime_events(limit=100)
        if events:
            st.dataframe(pd.DataFrame(events), width="stretch", hide_index=True)
        else:
            st.caption("No runtime events logged yet.")


st.set_page_config(page_title="Rollout ROI", layout="wide")
st.title("Rollout ROI")
st.caption("Month-by-month savings, investment, and break-even projections for tooling rollouts.")

st.session_state.setdefault("project", new_project())
st.session_state.setdefault("portfolio", reset_portfolio())

app_mode = st.sidebar.radio("Mode", options=[PROJECT_MODE, PORTFOLIO_MODE], horizontal=True, key="app_mode")
if app_mode == PROJECT_MODE:
    _render_project_mode()
else:
    _render_portfolio_mode()
_render_diagnostics()
