# components/charts.py
# Plotly chart helpers used across the app.
# All functions return a Plotly Figure that Streamlit can display with st.plotly_chart(...).

from typing import Optional, Sequence

import plotly.graph_objects as go
import plotly.io as pio

from ..models import SensitivityReport, YearResult

pio.templates.default = "plotly_white"

_HOVER = "Age %{x}<br>$%{y:,.0f}<extra></extra>"


def _fit(series, n):
    arr = list(series)
    if len(arr) < n: arr += [0.0] * (n - len(arr))
    return arr[:n]


def _layout(fig: go.Figure, title: str, height: int = 380, yaxis_title: str = "Dollars (today's)") -> go.Figure:
    fig.update_layout(
        title=title,
        template="plotly_white",
        height=height,
        margin=dict(l=10, r=10, t=40, b=10),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        xaxis_title="Age",
        yaxis_title=yaxis_title,
    )
    return fig


# ---------- Deterministic projection ----------
def projection_chart(ages: Sequence[int],
                     expected: Sequence[float],
                     optimistic: Sequence[float],
                     pessimistic: Sequence[float],
                     retirement_age: Optional[int] = None,
                     title: str = "Projected Net Worth") -> go.Figure:
    """Expected line inside the optimistic/pessimistic band."""
    n = len(ages)
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=ages, y=_fit(optimistic, n), mode="lines", name="Optimistic",
        line=dict(dash="dot"), hovertemplate=_HOVER,
    ))
    fig.add_trace(go.Scatter(
        x=ages, y=_fit(pessimistic, n), mode="lines", name="Pessimistic",
        line=dict(dash="dot"), fill="tonexty", hovertemplate=_HOVER,
    ))
    fig.add_trace(go.Scatter(
        x=ages, y=_fit(expected, n), mode="lines", name="Expected",
        line=dict(width=3), hovertemplate=_HOVER,
    ))
    if retirement_age is not None:
        fig.add_vline(x=retirement_age, line_dash="dash", line_color="grey",
                      annotation_text="Retirement", annotation_position="top left")
    return _layout(fig, title)


# ---------- Net worth "fan" ----------
def fan_chart(ages: Sequence[int],
              p10: Sequence[float],
              p50: Sequence[float],
              p90: Sequence[float],
              title: str = "Net Worth (Percentile Fan)") -> go.Figure:
    """Shaded 10–90 band with a median line."""
    n = len(ages)
    p10 = _fit(p10, n)
    p50 = _fit(p50, n)
    p90 = _fit(p90, n)

    fig = go.Figure()

    # Shaded band 10–90
    fig.add_trace(go.Scatter(
        x=ages, y=p90, mode="lines", line=dict(width=0),
        hoverinfo="skip", showlegend=False
    ))
    fig.add_trace(go.Scatter(
        x=ages, y=p10, mode="lines", line=dict(width=0),
        fill="tonexty", name="10–90%",
        hovertemplate=_HOVER
    ))

    # Median
    fig.add_trace(go.Scatter(
        x=ages, y=p50, mode="lines", name="Median",
        hovertemplate=_HOVER
    ))
    return _layout(fig, title)


# ---------- Success gauge ----------
def success_gauge(success_prob: float, target: float = 0.9) -> go.Figure:
    pct = max(0.0, min(100.0, float(success_prob) * 100.0))  # clamp 0–100
    target_pct = float(target) * 100.0
    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=round(pct, 1),
        number={"suffix": "%"},
        gauge={
            "axis": {"range": [0, 100]},
            "bar": {"thickness": 0.35},
            "steps": [
                {"range": [0, 60],  "color": "#ef4444"},  # red-500
                {"range": [60, 80], "color": "#f59e0b"},  # amber-500
                {"range": [80, 100],"color": "#22c55e"},  # green-500
            ],
            "threshold": {"line": {"color": "#1A2521", "width": 3}, "value": target_pct},
        }
    ))
    fig.update_layout(template="plotly_white", height=220, margin=dict(l=10, r=10, t=10, b=10))
    return fig


# ---------- Sample Monte Carlo paths ----------
def sample_paths_chart(paths: Sequence[Sequence[YearResult]],
                       labels: Optional[Sequence[str]] = None,
                       title: str = "Sample Paths") -> go.Figure:
    """One line per recorded path, best to worst."""
    fig = go.Figure()
    for i, path in enumerate(paths):
        name = labels[i] if labels and i < len(labels) else f"Path {i + 1}"
        fig.add_trace(go.Scatter(
            x=[y.age for y in path], y=[y.end_balance for y in path],
            mode="lines", name=name, hovertemplate=_HOVER,
        ))
    return _layout(fig, title)


# ---------- Guardrail spending ----------
def guardrail_spending_chart(years: Sequence[YearResult],
                             title: str = "Spending with Guardrails") -> go.Figure:
    """Spending bars with cut/raise markers over the portfolio line."""
    retired = [y for y in years if y.spending > 0 or y.guardrail_triggered]
    ages = [y.age for y in retired]
    fig = go.Figure()
    fig.add_bar(x=ages, y=[y.spending for y in retired], name="Spending",
                hovertemplate=_HOVER)
    cuts = [y for y in retired if y.guardrail_triggered == "cut"]
    raises = [y for y in retired if y.guardrail_triggered == "raise"]
    if cuts:
        fig.add_trace(go.Scatter(
            x=[y.age for y in cuts], y=[y.spending for y in cuts], mode="markers",
            name="Cut", marker=dict(symbol="triangle-down", size=10, color="#ef4444"),
        ))
    if raises:
        fig.add_trace(go.Scatter(
            x=[y.age for y in raises], y=[y.spending for y in raises], mode="markers",
            name="Raise", marker=dict(symbol="triangle-up", size=10, color="#22c55e"),
        ))
    fig.add_trace(go.Scatter(
        x=ages, y=[y.end_balance for y in retired], mode="lines", name="Portfolio",
        yaxis="y2", hovertemplate=_HOVER,
    ))
    _layout(fig, title)
    fig.update_layout(yaxis2=dict(title="Portfolio", overlaying="y", side="right", showgrid=False))
    return fig


# ---------- Sensitivity tornado ----------
def sensitivity_tornado(report: SensitivityReport,
                        title: str = "What Moves Your Success Rate") -> go.Figure:
    """Horizontal bars of success-rate change relative to the baseline."""
    items = list(reversed(report.items))  # largest impact on top
    names = [it.variable for it in items]
    base = report.baseline_success_rate
    fig = go.Figure()
    fig.add_bar(
        y=names, x=[(it.low_success_rate - base) * 100 for it in items],
        orientation="h", name="Low", marker_color="#f59e0b",
        hovertemplate="%{y}<br>%{x:+.1f} pts<extra></extra>",
    )
    fig.add_bar(
        y=names, x=[(it.high_success_rate - base) * 100 for it in items],
        orientation="h", name="High", marker_color="#18453B",
        hovertemplate="%{y}<br>%{x:+.1f} pts<extra></extra>",
    )
    fig.update_layout(
        barmode="overlay",
        title=title,
        template="plotly_white",
        height=320,
        margin=dict(l=10, r=10, t=40, b=10),
        xaxis_title="Change in success rate (points)",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig
