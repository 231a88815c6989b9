"""Value objects passed into and returned from the engines.

Everything here is an immutable pydantic model.  Money is in today's dollars
and every rate is a real (inflation-adjusted) annual decimal.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------- inputs ----------

class IncomeSource(_Frozen):
    """Recurring retirement income such as a pension or annuity."""

    name: str = ""
    annual_amount: float = Field(..., ge=0)
    start_age: Optional[int] = Field(None, ge=0)
    end_age: Optional[int] = Field(None, ge=0)
    growth_rate: float = 0.0
    # carried for the presentation layer, the engines do not model tax
    is_taxable: bool = True

    @model_validator(mode="after")
    def _window(self):
        if self.start_age is not None and self.end_age is not None and self.end_age < self.start_age:
            raise ValueError("income source end_age is before start_age")
        return self


class OneTimeEvent(_Frozen):
    name: str = ""
    year: int
    amount: float


class AnnualBudget(_Frozen):
    """Extra yearly retirement spending inside an age window (travel, care...)."""

    name: str = ""
    annual_amount: float
    start_age: Optional[int] = Field(None, ge=0)
    end_age: Optional[int] = Field(None, ge=0)


class SocialSecurity(_Frozen):
    claiming_age: int = Field(..., ge=62, le=70)
    monthly_benefit: float = Field(..., ge=0)
    full_retirement_age: int = Field(67, ge=62, le=70)


class PartTimeWork(_Frozen):
    annual_income: float = Field(..., ge=0)
    years: int = Field(..., ge=0)


class GuardrailsConfig(_Frozen):
    is_enabled: bool = False
    upper_guardrail_percent: float = Field(0.20, ge=0)
    lower_guardrail_percent: float = Field(0.20, ge=0, le=1)
    adjustment_percent: float = Field(0.10, ge=0, le=1)
    strategy_type: Literal["percentage", "fixed"] = "percentage"
    fixed_adjustment_amount: Optional[float] = Field(None, ge=0)
    spending_floor: Optional[float] = Field(None, ge=0)
    spending_ceiling: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def _bounds(self):
        if (
            self.spending_floor is not None
            and self.spending_ceiling is not None
            and self.spending_ceiling < self.spending_floor
        ):
            raise ValueError("spending_ceiling is below spending_floor")
        return self


class SimulationInputs(_Frozen):
    """Flat snapshot assembled by the account/holding/liability queries."""

    current_net_worth: float
    annual_spending: float = Field(..., ge=0)
    current_age: int = Field(..., ge=0, le=120)
    retirement_age: int = Field(..., ge=0, le=120)
    plan_to_age: Optional[int] = Field(None, ge=0, le=120)
    start_year: int = Field(default_factory=lambda: date.today().year)
    income_sources: List[IncomeSource] = Field(default_factory=list)
    one_time_events: List[OneTimeEvent] = Field(default_factory=list)
    annual_budgets: List[AnnualBudget] = Field(default_factory=list)
    social_security: Optional[SocialSecurity] = None
    part_time_work: Optional[PartTimeWork] = None
    guardrails: GuardrailsConfig = Field(default_factory=GuardrailsConfig)

    @model_validator(mode="after")
    def _age_order(self):
        if self.retirement_age < self.current_age:
            raise ValueError("retirement_age must not be before current_age")
        if self.plan_to_age is not None and self.plan_to_age < self.retirement_age:
            raise ValueError("retirement_age must not be after plan_to_age")
        return self


class Assumptions(_Frozen):
    real_return: float = Field(0.05, ge=-0.10, le=0.20)
    optimistic_return: float = Field(0.07, ge=-0.10, le=0.20)
    pessimistic_return: float = Field(0.03, ge=-0.10, le=0.20)
    volatility: float = Field(0.12, ge=0.0, le=0.50)
    target_success_rate: float = Field(0.90, ge=0.50, le=0.99)
    iterations: int = Field(1000, ge=1, le=100_000)
    life_expectancy: int = Field(95, ge=70, le=120)


# ---------- outputs ----------

class YearResult(_Frozen):
    year_index: int
    age: int
    start_balance: float
    withdrawal: float
    income: float
    investment_return_amount: float
    end_balance: float
    return_rate: float
    spending: float
    guardrail_triggered: Optional[Literal["cut", "raise"]] = None


ProjectionStatus = Literal["on_track", "at_risk", "behind"]


class ProjectionResult(_Frozen):
    years: List[YearResult]
    optimistic_balances: List[float]
    pessimistic_balances: List[float]
    status: ProjectionStatus
    expected_runs_out_age: Optional[int]
    optimistic_runs_out_age: Optional[int]
    pessimistic_runs_out_age: Optional[int]
    projected_net_worth_at_retirement: float
    years_until_retirement: int
    assumptions: Assumptions

    @property
    def ages(self) -> List[int]:
        return [y.age for y in self.years]

    @property
    def expected_balances(self) -> List[float]:
        return [y.end_balance for y in self.years]


class GuardrailsSummary(_Frozen):
    min_spending: float
    max_spending: float
    spending_range: float
    cut_count: int
    raise_count: int
    base_spending: float
    final_spending: float
    final_portfolio: float
    portfolio_lasts_to_age: Optional[int]
    funds_last_to_plan_age: bool


class GuardrailsProjection(_Frozen):
    is_enabled: bool
    years: List[YearResult]
    summary: GuardrailsSummary


class SuccessStats(_Frozen):
    count: int
    median_ending_balance: float
    p10_ending_balance: float
    p90_ending_balance: float


class FailureStats(_Frozen):
    count: int
    average_years_lasted: float
    median_years_lasted: float
    worst_case: int


class RiskStats(_Frozen):
    average_lowest_balance: float
    percent_cut_paths: float
    cut_trigger_percent: float
    raise_trigger_percent: float


class SimulationResult(_Frozen):
    iterations: int
    success_rate: float = Field(..., ge=0, le=1)
    success: SuccessStats
    failure: FailureStats
    risk: RiskStats
    ages: List[int]
    percentiles: Dict[str, List[float]]
    sample_paths: List[List[YearResult]]
    fingerprint: str
    from_cache: bool = False
    cached_at: Optional[datetime] = None


class WithdrawalComparison(_Frozen):
    current_spending: float
    max_sustainable_spending: float
    difference: float
    percent_difference: Optional[float]
    can_afford_current_spending: bool
    current_withdrawal_rate: float


class MaxWithdrawalResult(_Frozen):
    max_withdrawal: float
    monthly_amount: float
    withdrawal_rate: float
    success_rate: float
    target_success_rate: float
    search_steps: int
    converged: bool
    feasible: bool
    capped: bool = False
    comparison: WithdrawalComparison
    from_cache: bool = False


class WhatIfOverrides(_Frozen):
    """Partial scenario; ``None`` means "keep the baseline value"."""

    annual_spending: Optional[float] = Field(None, ge=0)
    retirement_age: Optional[int] = Field(None, ge=0, le=120)
    plan_to_age: Optional[int] = Field(None, ge=0, le=120)
    real_return: Optional[float] = None
    volatility: Optional[float] = None
    ss_claiming_age: Optional[int] = Field(None, ge=62, le=70)
    part_time_income: Optional[float] = Field(None, ge=0)
    part_time_years: Optional[int] = Field(None, ge=0)
    guardrails_enabled: Optional[bool] = None
    iterations: Optional[int] = Field(None, ge=1)


class WhatIfResult(_Frozen):
    success_rate: float
    baseline_success_rate: float
    success_rate_delta: float
    changes_from_baseline: List[str]
    inputs: SimulationInputs
    assumptions: Assumptions
    simulation: SimulationResult


class SensitivityItem(_Frozen):
    variable: str
    impact: float
    low_value: float
    low_success_rate: float
    high_value: float
    high_success_rate: float


class SensitivityReport(_Frozen):
    baseline_success_rate: float
    items: List[SensitivityItem]


__all__ = [
    "IncomeSource",
    "OneTimeEvent",
    "AnnualBudget",
    "SocialSecurity",
    "PartTimeWork",
    "GuardrailsConfig",
    "SimulationInputs",
    "Assumptions",
    "YearResult",
    "ProjectionStatus",
    "ProjectionResult",
    "GuardrailsSummary",
    "GuardrailsProjection",
    "SuccessStats",
    "FailureStats",
    "RiskStats",
    "SimulationResult",
    "WithdrawalComparison",
    "MaxWithdrawalResult",
    "WhatIfOverrides",
    "WhatIfResult",
    "SensitivityItem",
    "SensitivityReport",
]
