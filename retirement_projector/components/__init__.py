"""Expose component submodules for convenience."""

from .charts import (
    fan_chart,
    guardrail_spending_chart,
    projection_chart,
    sample_paths_chart,
    sensitivity_tornado,
    success_gauge,
)
from .insights import generate_insights
from .report import build_pdf
from .tables import percentile_frame, projection_frame, sensitivity_frame, years_frame

__all__ = [
    "fan_chart",
    "guardrail_spending_chart",
    "projection_chart",
    "sample_paths_chart",
    "sensitivity_tornado",
    "success_gauge",
    "generate_insights",
    "build_pdf",
    "percentile_frame",
    "projection_frame",
    "sensitivity_frame",
    "years_frame",
]
