# app.py
import json
import sys
from datetime import date

import streamlit as st
from loguru import logger

from retirement_projector.calculators.assumptions import coerce_inputs
from retirement_projector.errors import ErrorKind
from retirement_projector.service import PlannerService
from retirement_projector.components.forms import load_plan, profile_form
from retirement_projector.components.charts import (
    fan_chart,
    guardrail_spending_chart,
    projection_chart,
    sample_paths_chart,
    sensitivity_tornado,
    success_gauge,
)
from retirement_projector.components.insights import generate_insights
from retirement_projector.components.report import build_pdf
from retirement_projector.components.tables import projection_frame, sensitivity_frame, years_frame

logger.remove()
logger.add(sys.stderr, level="INFO")
logger.enable("retirement_projector")

SEED = 42
SAMPLE_LABELS = ["Worst", "10th pct", "25th pct", "Median", "75th pct", "90th pct", "Best"]

# ---------- Page config ----------
st.set_page_config(
    page_title="Retirement Projector",
    layout="wide",
    initial_sidebar_state="auto",
)

st.markdown(
    """
<style>
.block-container { padding: 1.5rem 2rem; max-width: 1400px; margin: auto; }
section[data-testid="stSidebar"] { background-color: #E6ECE9; border-right: 1px solid #D1D9D6; }
section[data-testid="stSidebar"] h2, section[data-testid="stSidebar"] h3 { color: #18453B; font-weight: 600; }
div[data-testid="stMetric"] {
    background: #FFFFFF; border-radius: 12px; padding: 1rem;
    box-shadow: 0 2px 8px rgba(0,0,0,0.05); border: 1px solid #E6ECE9;
}
div.stPlotlyChart { background: #FFFFFF; border-radius: 12px; padding: 0.75rem; border: 1px solid #E6ECE9; }
button[kind="primary"] { background-color: #18453B; color: #FFFFFF; border-radius: 8px; border: none; }
</style>
""",
    unsafe_allow_html=True,
)


@st.cache_resource
def get_service() -> PlannerService:
    # one cache per server process
    return PlannerService()


service = get_service()

# ---------- Session boot ----------
st.session_state.setdefault("form_defaults", {})
st.session_state.setdefault("event_rows", [])  # one-time events table
st.session_state.setdefault("export_pdf_bytes", None)


def _show_error(err) -> None:
    if err.kind == ErrorKind.VALIDATION:
        if err.missing_inputs:
            st.warning("Complete your profile: " + ", ".join(err.missing_inputs))
        else:
            st.warning(err.message)
    elif err.kind == ErrorKind.CANCELLED:
        st.info("Simulation cancelled.")
    else:
        st.error(f"Something went wrong in the calculation: {err.message}")


# ====== SIDEBAR: FORM ======
st.sidebar.header("Retirement Plan Inputs")
inputs, assumptions = profile_form()

# --- Sidebar: one-time events editor ---
st.sidebar.subheader("One-time Events")
events = st.session_state["event_rows"]
this_year = date.today().year

if st.sidebar.button("➕ Add Event", key="ev_add"):
    events.append({"name": "", "year": this_year, "amount": 0.0})
    st.session_state["event_rows"] = events
    st.rerun()

remove_idx = []
if events:
    st.sidebar.markdown("**Year** | **Amount** (negative = expense)")
for i, row in enumerate(events):
    c1, c2, c3 = st.sidebar.columns([1, 1, 0.3], gap="small")
    year = c1.number_input(
        "Year", value=int(row.get("year", this_year)), min_value=this_year,
        max_value=this_year + 100, step=1, key=f"ev_year_{i}", label_visibility="collapsed",
    )
    amt = c2.number_input(
        "Amount", value=float(row.get("amount", 0.0)), step=1000.0, format="%.2f",
        key=f"ev_amt_{i}", label_visibility="collapsed",
    )
    if c3.button("✖", key=f"ev_del_{i}"):
        remove_idx.append(i)
    events[i] = {"name": row.get("name", ""), "year": int(year), "amount": float(amt)}

if remove_idx:
    for idx in reversed(remove_idx):
        events.pop(idx)
    st.session_state["event_rows"] = events
    st.rerun()

inputs["one_time_events"] = events
inputs["start_year"] = this_year

st.sidebar.divider()
st.sidebar.header("Export")
st.sidebar.download_button(
    "⬇️ Download inputs (JSON)",
    data=json.dumps({"inputs": inputs, "assumptions": assumptions}, indent=2),
    file_name="retirement_inputs.json",
    mime="application/json",
)
uploaded = st.sidebar.file_uploader("Load inputs (JSON)", type="json")
if uploaded is not None and st.session_state.get("loaded_file_id") != uploaded.file_id:
    try:
        plan = json.load(uploaded)
    except json.JSONDecodeError:
        st.sidebar.error("Invalid JSON file.")
    else:
        st.session_state["loaded_file_id"] = uploaded.file_id
        load_plan(plan)
        st.session_state["event_rows"] = list(plan.get("inputs", {}).get("one_time_events", []))
        for key in [k for k in st.session_state if str(k).startswith(("ev_year_", "ev_amt_"))]:
            del st.session_state[key]
        st.rerun()
if st.sidebar.button("Clear cached results"):
    st.sidebar.success(f"Cleared {service.clear_cache()} cached results.")

# ====== HEADER ======
st.markdown(
    """
    ### **Retirement Projector**
    _Deterministic projections, guardrail withdrawals, Monte Carlo success and what-if scenarios._
    """
)

tab_proj, tab_mc, tab_gr, tab_max, tab_what, tab_sens = st.tabs(
    ["Projection", "Monte Carlo", "Guardrails", "Max Withdrawal", "What If", "Sensitivity"]
)

# ====== PROJECTION ======
projected = service.project(inputs, assumptions)
with tab_proj:
    if not projected.ok:
        _show_error(projected)
    else:
        proj = projected.value
        k1, k2, k3 = st.columns(3)
        k1.metric("Status", proj.status.replace("_", " ").title())
        k2.metric("Net worth at retirement", f"${proj.projected_net_worth_at_retirement:,.0f}")
        k3.metric("Expected runs out at", proj.expected_runs_out_age or "Never")
        st.plotly_chart(
            projection_chart(proj.ages, proj.expected_balances, proj.optimistic_balances,
                             proj.pessimistic_balances, retirement_age=inputs["retirement_age"]),
            use_container_width=True,
        )
        df = projection_frame(proj)
        st.dataframe(df, use_container_width=True, height=350)
        st.download_button(
            "⬇️ CSV (projection)",
            data=df.to_csv().encode("utf-8"),
            file_name="projection.csv",
            mime="text/csv",
        )

# ====== MONTE CARLO ======
with tab_mc:
    left, right = st.columns(2)
    with left:
        run_now = st.button("Run simulation", type="primary")
    with right:
        fresh = st.checkbox("Ignore cached result", value=False)
    if run_now:
        with st.spinner(f"Running {assumptions['iterations']:,} Monte Carlo paths..."):
            st.session_state["simulated"] = service.run_simulation(
                inputs, assumptions, skip_cache=fresh, seed=SEED
            )
    simulated = st.session_state.get("simulated")
    if simulated is None:
        st.info("Run a simulation to see results.")
    elif not simulated.ok:
        _show_error(simulated)
    else:
        sim = simulated.value
        c1, c2 = st.columns(2)
        with c1:
            st.plotly_chart(success_gauge(sim.success_rate, assumptions["target_success_rate"]),
                            use_container_width=True)
        with c2:
            st.metric("Median ending balance (successful paths)", f"${sim.success.median_ending_balance:,.0f}")
            st.metric("Failed paths", f"{sim.failure.count:,} of {sim.iterations:,}")
            if sim.from_cache and sim.cached_at is not None:
                st.caption(f"Cached result from {sim.cached_at:%Y-%m-%d %H:%M} UTC.")
        p = sim.percentiles
        st.plotly_chart(fan_chart(sim.ages, p["p10"], p["p50"], p["p90"]), use_container_width=True)
        st.plotly_chart(sample_paths_chart(
            sim.sample_paths, SAMPLE_LABELS if len(sim.sample_paths) == len(SAMPLE_LABELS) else None
        ), use_container_width=True)
        st.subheader("Insights")
        st.info(generate_insights(sim, assumptions["target_success_rate"]))
        if projected.ok and st.button("Build PDF report"):
            st.session_state["export_pdf_bytes"] = build_pdf(
                coerce_inputs(inputs), projected.value, sim,
                notes={"Insight": generate_insights(sim, assumptions["target_success_rate"], use_ai=False)},
            )
    if st.session_state.get("export_pdf_bytes"):
        st.download_button(
            "⬇️ Download PDF",
            data=st.session_state["export_pdf_bytes"],
            file_name="retirement_report.pdf",
            mime="application/pdf",
        )

# ====== GUARDRAILS ======
with tab_gr:
    gr_inputs = dict(inputs, guardrails=dict(inputs["guardrails"], is_enabled=True))
    guarded = service.project_with_guardrails(gr_inputs, assumptions)
    if not guarded.ok:
        _show_error(guarded)
    else:
        summary = guarded.value.summary
        k1, k2, k3, k4 = st.columns(4)
        k1.metric("Spending range", f"${summary.min_spending:,.0f} – ${summary.max_spending:,.0f}")
        k2.metric("Cuts / raises", f"{summary.cut_count} / {summary.raise_count}")
        k3.metric("Final spending", f"${summary.final_spending:,.0f}")
        k4.metric("Portfolio lasts to", summary.portfolio_lasts_to_age or "—")
        st.plotly_chart(guardrail_spending_chart(guarded.value.years), use_container_width=True)
        st.dataframe(years_frame(guarded.value.years), use_container_width=True, height=300)
        if not inputs["guardrails"]["is_enabled"]:
            st.caption("Guardrails are off in your plan; this tab shows what turning them on would do.")

# ====== MAX WITHDRAWAL ======
with tab_max:
    st.caption(f"Highest spending that keeps the success rate at or above "
               f"{assumptions['target_success_rate'] * 100:.0f}%.")
    if st.button("Find sustainable withdrawal"):
        with st.spinner("Searching..."):
            solved = service.find_max_sustainable_withdrawal(inputs, assumptions, seed=SEED)
        if not solved.ok:
            _show_error(solved)
        else:
            res = solved.value
            cmp = res.comparison
            k1, k2, k3 = st.columns(3)
            k1.metric("Sustainable spending", f"${res.max_withdrawal:,.0f}/yr", f"${res.monthly_amount:,.0f}/mo")
            k2.metric("Withdrawal rate", f"{res.withdrawal_rate * 100:.2f}%")
            k3.metric("Verified success rate", f"{res.success_rate * 100:.1f}%")
            if not res.feasible:
                st.warning("Even with no spending the target success rate is out of reach.")
            elif res.capped:
                st.info(f"The search stops at ${res.max_withdrawal:,.0f}, which already meets the target. "
                        "Sustainable spending may be higher.")
            elif cmp.can_afford_current_spending:
                st.success(f"Your current spending of ${cmp.current_spending:,.0f} fits, "
                           f"with ${cmp.difference:,.0f} to spare.")
            else:
                st.warning(f"Your current spending is ${-cmp.difference:,.0f} above the sustainable level.")

# ====== WHAT IF ======
with tab_what:
    c1, c2, c3 = st.columns(3)
    wi_spending = c1.number_input("Annual spending ($)", min_value=0.0, step=1000.0,
                                  value=float(inputs["annual_spending"]))
    wi_retire = c2.number_input("Retirement age", min_value=int(inputs["current_age"]), max_value=120,
                                value=int(inputs["retirement_age"]))
    wi_ss = c3.slider("Social Security claiming age", 62, 70,
                      value=(inputs["social_security"] or {}).get("claiming_age", 67),
                      disabled=inputs["social_security"] is None)
    c4, c5, c6 = st.columns(3)
    wi_return = c4.number_input("Real return (%)", min_value=-10.0, max_value=20.0, step=0.5,
                                value=assumptions["real_return"] * 100) / 100
    wi_ptw = c5.number_input("Part-time income ($/yr)", min_value=0.0, step=1000.0,
                             value=float((inputs["part_time_work"] or {}).get("annual_income", 0.0)))
    wi_ptw_years = c6.number_input("Part-time years", min_value=0, max_value=30,
                                   value=int((inputs["part_time_work"] or {}).get("years", 0)))
    wi_guardrails = st.checkbox("Guardrails", value=inputs["guardrails"]["is_enabled"])
    if st.button("Compare scenario"):
        overrides = {
            "annual_spending": wi_spending,
            "retirement_age": int(wi_retire),
            "real_return": wi_return,
            "part_time_income": wi_ptw,
            "part_time_years": int(wi_ptw_years),
            "guardrails_enabled": wi_guardrails,
        }
        if inputs["social_security"] is not None:
            overrides["ss_claiming_age"] = int(wi_ss)
        with st.spinner("Running baseline and scenario..."):
            compared = service.run_what_if(inputs, overrides, assumptions, seed=SEED)
        if not compared.ok:
            _show_error(compared)
        else:
            wi = compared.value
            st.metric("Scenario success rate", f"{wi.success_rate * 100:.1f}%",
                      f"{wi.success_rate_delta * 100:+.1f} pts")
            for line in wi.changes_from_baseline or ["No changes from your plan."]:
                st.markdown(f"- {line}")
            p = wi.simulation.percentiles
            st.plotly_chart(fan_chart(wi.simulation.ages, p["p10"], p["p50"], p["p90"],
                                      title="Scenario Net Worth"), use_container_width=True)

# ====== SENSITIVITY ======
with tab_sens:
    if st.button("Run sensitivity analysis"):
        with st.spinner("Re-running the simulation for each input..."):
            sens = service.run_sensitivity_analysis(inputs, assumptions, seed=SEED)
        if not sens.ok:
            _show_error(sens)
        else:
            st.plotly_chart(sensitivity_tornado(sens.value), use_container_width=True)
            st.dataframe(sensitivity_frame(sens.value), use_container_width=True)
