import streamlit as st

from ..calculators.assumptions import load_defaults

# Stable widget keys; a loaded plan clears them so the form picks up form_defaults
WIDGET_KEYS = {
    "current_age": "in_current_age",
    "retirement_age": "in_retirement_age",
    "plan_to_age": "in_plan_to_age",

    "net_worth": "in_net_worth",
    "annual_spending": "in_annual_spending",

    "pension_amount": "in_pension_amount",
    "pension_start_age": "in_pension_start_age",
    "pension_growth": "in_pension_growth_pct",

    "ss_enabled": "in_ss_enabled",
    "ss_monthly": "in_ss_monthly",
    "ss_claim_age": "in_ss_claim_age",

    "ptw_income": "in_ptw_income",
    "ptw_years": "in_ptw_years",

    "gr_enabled": "in_gr_enabled",
    "gr_upper": "in_gr_upper_pct",
    "gr_lower": "in_gr_lower_pct",
    "gr_adjust": "in_gr_adjust_pct",
    "gr_floor": "in_gr_floor",
    "gr_ceiling": "in_gr_ceiling",

    "real_return": "in_real_return_pct",
    "optimistic_return": "in_optimistic_return_pct",
    "pessimistic_return": "in_pessimistic_return_pct",
    "volatility": "in_volatility_pct",
    "target_success": "in_target_success_pct",
    "iterations": "in_iterations",
}


def _d(key, fallback):
    return st.session_state.get("form_defaults", {}).get(key, fallback)


def plan_to_form_defaults(plan: dict) -> dict:
    """Flatten a downloaded ``{"inputs": ..., "assumptions": ...}`` plan into form keys."""
    inputs = plan.get("inputs", {})
    assumptions = plan.get("assumptions", {})
    ss = inputs.get("social_security") or {}
    ptw = inputs.get("part_time_work") or {}
    gr = inputs.get("guardrails") or {}
    pension = next(iter(inputs.get("income_sources") or []), {})

    defaults = {
        "current_age": inputs.get("current_age"),
        "retirement_age": inputs.get("retirement_age"),
        "plan_to_age": inputs.get("plan_to_age"),
        "net_worth": inputs.get("current_net_worth"),
        "annual_spending": inputs.get("annual_spending"),
        "pension_amount": pension.get("annual_amount"),
        "pension_start_age": pension.get("start_age"),
        "ss_enabled": bool(ss),
        "ss_monthly": ss.get("monthly_benefit"),
        "ss_claim_age": ss.get("claiming_age"),
        "ptw_income": ptw.get("annual_income"),
        "ptw_years": ptw.get("years"),
        "gr_enabled": gr.get("is_enabled"),
        "gr_floor": gr.get("spending_floor") or 0.0,
        "gr_ceiling": gr.get("spending_ceiling") or 0.0,
        "iterations": assumptions.get("iterations"),
    }
    # percentage widgets show whole percents
    for key, value in (
        ("pension_growth", pension.get("growth_rate")),
        ("gr_upper", gr.get("upper_guardrail_percent")),
        ("gr_lower", gr.get("lower_guardrail_percent")),
        ("gr_adjust", gr.get("adjustment_percent")),
        ("real_return", assumptions.get("real_return")),
        ("optimistic_return", assumptions.get("optimistic_return")),
        ("pessimistic_return", assumptions.get("pessimistic_return")),
        ("volatility", assumptions.get("volatility")),
        ("target_success", assumptions.get("target_success_rate")),
    ):
        if value is not None:
            defaults[key] = value * 100.0
    return {k: v for k, v in defaults.items() if v is not None}


def load_plan(plan: dict) -> None:
    """Make ``plan`` the form's starting values on the next rerun."""
    st.session_state["form_defaults"] = plan_to_form_defaults(plan)
    for widget_key in WIDGET_KEYS.values():
        st.session_state.pop(widget_key, None)


def _pct(label, key, fallback, min_value, max_value, help_text):
    value = st.sidebar.number_input(
        label, min_value=min_value, max_value=max_value, step=0.5,
        value=float(_d(key, fallback)), key=WIDGET_KEYS[key], help=help_text,
    )
    return value / 100.0


def profile_form():
    """Render the sidebar and return ``(inputs, assumptions)`` as plain dicts."""
    defaults = load_defaults()
    a = defaults["assumptions"]
    g = defaults["guardrails"]

    # -------- Profile --------
    st.sidebar.header("Profile")
    current_age = st.sidebar.number_input(
        "Current age", min_value=18, max_value=120,
        value=_d("current_age", 55), key=WIDGET_KEYS["current_age"],
        help="Your age today. Drives the start of the projection window."
    )
    retirement_age = st.sidebar.number_input(
        "Retirement age", min_value=18, max_value=120,
        value=_d("retirement_age", 65), key=WIDGET_KEYS["retirement_age"],
        help="When withdrawals start."
    )
    plan_to_age = st.sidebar.number_input(
        "Plan through age", min_value=60, max_value=120,
        value=_d("plan_to_age", a["life_expectancy"]), key=WIDGET_KEYS["plan_to_age"],
        help="Projection horizon used for success probability."
    )
    net_worth = st.sidebar.number_input(
        "Investable net worth ($)", min_value=0.0, step=10000.0,
        value=float(_d("net_worth", 1_000_000.0)), key=WIDGET_KEYS["net_worth"],
    )
    annual_spending = st.sidebar.number_input(
        "Annual spending in retirement ($)", min_value=0.0, step=1000.0,
        value=float(_d("annual_spending", 40_000.0)), key=WIDGET_KEYS["annual_spending"],
        help="Today's dollars. Withdrawn every retirement year."
    )

    # -------- Income --------
    st.sidebar.header("Retirement Income")
    pension = st.sidebar.number_input(
        "Pension / annuity ($/yr)", min_value=0.0, step=1000.0,
        value=float(_d("pension_amount", 0.0)), key=WIDGET_KEYS["pension_amount"],
    )
    pension_start = st.sidebar.number_input(
        "Pension start age", min_value=18, max_value=120,
        value=_d("pension_start_age", retirement_age), key=WIDGET_KEYS["pension_start_age"],
    )
    pension_growth = _pct("Pension growth (%/yr)", "pension_growth", 0.0, -5.0, 10.0,
                          "Real growth, e.g. 0 for an inflation-indexed pension.")

    ss_enabled = st.sidebar.checkbox(
        "Social Security", value=_d("ss_enabled", True), key=WIDGET_KEYS["ss_enabled"]
    )
    ss_monthly = st.sidebar.number_input(
        "Monthly benefit at claiming age ($)", min_value=0.0, step=100.0,
        value=float(_d("ss_monthly", 2000.0)), key=WIDGET_KEYS["ss_monthly"],
        disabled=not ss_enabled,
    )
    ss_claim_age = st.sidebar.slider(
        "Claiming age", min_value=62, max_value=70,
        value=_d("ss_claim_age", 67), key=WIDGET_KEYS["ss_claim_age"],
        disabled=not ss_enabled,
    )

    ptw_income = st.sidebar.number_input(
        "Part-time income ($/yr)", min_value=0.0, step=1000.0,
        value=float(_d("ptw_income", 0.0)), key=WIDGET_KEYS["ptw_income"],
    )
    ptw_years = st.sidebar.number_input(
        "Part-time years", min_value=0, max_value=30,
        value=_d("ptw_years", 0), key=WIDGET_KEYS["ptw_years"],
        help="Counted from the retirement age."
    )

    # -------- Guardrails --------
    st.sidebar.header("Guardrails")
    gr_enabled = st.sidebar.checkbox(
        "Adjust spending with guardrails", value=_d("gr_enabled", g["is_enabled"]),
        key=WIDGET_KEYS["gr_enabled"],
        help="Cut spending when the withdrawal rate drifts up, raise it when it drifts down."
    )
    gr_upper = _pct("Upper guardrail (%)", "gr_upper", g["upper_guardrail_percent"] * 100, 0.0, 100.0,
                    "Cut when the rate exceeds the initial rate by this much.")
    gr_lower = _pct("Lower guardrail (%)", "gr_lower", g["lower_guardrail_percent"] * 100, 0.0, 100.0,
                    "Raise when the rate falls below the initial rate by this much.")
    gr_adjust = _pct("Adjustment (%)", "gr_adjust", g["adjustment_percent"] * 100, 0.0, 100.0,
                     "Size of each cut or raise.")
    gr_floor = st.sidebar.number_input(
        "Spending floor ($, 0 = none)", min_value=0.0, step=1000.0,
        value=float(_d("gr_floor", 0.0)), key=WIDGET_KEYS["gr_floor"],
    )
    gr_ceiling = st.sidebar.number_input(
        "Spending ceiling ($, 0 = none)", min_value=0.0, step=1000.0,
        value=float(_d("gr_ceiling", 0.0)), key=WIDGET_KEYS["gr_ceiling"],
    )

    # -------- Assumptions --------
    st.sidebar.header("Assumptions")
    real_return = _pct("Expected real return (%)", "real_return", a["real_return"] * 100, -10.0, 20.0,
                       "After inflation.")
    optimistic = _pct("Optimistic real return (%)", "optimistic_return", a["optimistic_return"] * 100,
                      -10.0, 20.0, "Upper line of the projection band.")
    pessimistic = _pct("Pessimistic real return (%)", "pessimistic_return", a["pessimistic_return"] * 100,
                       -10.0, 20.0, "Lower line of the projection band.")
    volatility = _pct("Volatility (%)", "volatility", a["volatility"] * 100, 0.0, 50.0,
                      "Standard deviation of annual returns.")
    target = _pct("Target success rate (%)", "target_success", a["target_success_rate"] * 100, 50.0, 99.0,
                  "Used by the sustainable-withdrawal solver.")
    path_options = [500, 1000, 2000, 5000]
    chosen = _d("iterations", a["iterations"])
    iterations = st.sidebar.selectbox(
        "Monte Carlo paths", path_options,
        index=path_options.index(chosen) if chosen in path_options else path_options.index(a["iterations"]),
        key=WIDGET_KEYS["iterations"],
    )

    income_sources = []
    if pension > 0:
        income_sources.append({
            "name": "Pension", "annual_amount": pension,
            "start_age": int(pension_start), "growth_rate": pension_growth,
        })

    inputs = {
        "current_net_worth": net_worth,
        "annual_spending": annual_spending,
        "current_age": int(current_age),
        "retirement_age": int(retirement_age),
        "plan_to_age": int(plan_to_age),
        "income_sources": income_sources,
        "social_security": (
            {"claiming_age": int(ss_claim_age), "monthly_benefit": ss_monthly} if ss_enabled else None
        ),
        "part_time_work": (
            {"annual_income": ptw_income, "years": int(ptw_years)} if ptw_income > 0 and ptw_years > 0 else None
        ),
        "guardrails": {
            "is_enabled": gr_enabled,
            "upper_guardrail_percent": gr_upper,
            "lower_guardrail_percent": gr_lower,
            "adjustment_percent": gr_adjust,
            "spending_floor": gr_floor or None,
            "spending_ceiling": gr_ceiling or None,
        },
    }
    assumptions = {
        "real_return": real_return,
        "optimistic_return": optimistic,
        "pessimistic_return": pessimistic,
        "volatility": volatility,
        "target_success_rate": target,
        "iterations": int(iterations),
        "life_expectancy": max(70, int(plan_to_age)),
    }
    return inputs, assumptions
