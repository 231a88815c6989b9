"""pandas views of engine results for ``st.dataframe`` and CSV download."""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from ..models import ProjectionResult, SensitivityReport, SimulationResult, YearResult

YEAR_COLUMNS = [
    "age",
    "start_balance",
    "income",
    "withdrawal",
    "investment_return_amount",
    "end_balance",
    "return_rate",
    "spending",
    "guardrail_triggered",
]


def years_frame(years: Sequence[YearResult]) -> pd.DataFrame:
    df = pd.DataFrame([y.model_dump() for y in years], columns=["year_index"] + YEAR_COLUMNS)
    return df.set_index("year_index")


def projection_frame(result: ProjectionResult) -> pd.DataFrame:
    """Expected years plus the optimistic and pessimistic balances."""
    df = years_frame(result.years)
    df["optimistic_balance"] = result.optimistic_balances
    df["pessimistic_balance"] = result.pessimistic_balances
    return df


def percentile_frame(result: SimulationResult, start_year: Optional[int] = None) -> pd.DataFrame:
    df = pd.DataFrame(result.percentiles, index=pd.Index(result.ages, name="age"))
    if start_year is not None:
        df.insert(0, "year", [start_year + i for i in range(len(result.ages))])
    return df


def sensitivity_frame(report: SensitivityReport) -> pd.DataFrame:
    df = pd.DataFrame([it.model_dump() for it in report.items])
    if df.empty:
        return df
    df["low_delta"] = df["low_success_rate"] - report.baseline_success_rate
    df["high_delta"] = df["high_success_rate"] - report.baseline_success_rate
    return df.set_index("variable")


__all__ = ["years_frame", "projection_frame", "percentile_frame", "sensitivity_frame"]
