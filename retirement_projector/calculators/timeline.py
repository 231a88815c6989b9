from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np

from ..models import SimulationInputs, YearResult


class Timeline:
    """Per-year cash flows for one set of inputs, independent of returns.

    ``income`` holds every signed inflow of a year: income sources, Social
    Security and part-time work once retired, plus one-time events in any
    year.  ``budgets`` holds the extra retirement spending.
    """

    def __init__(self, inputs: SimulationInputs):
        if inputs.plan_to_age is None:
            raise ValueError("plan_to_age must be resolved before building a timeline")
        self.start_balance = float(inputs.current_net_worth)
        self.base_spending = float(inputs.annual_spending)
        self.current_age = int(inputs.current_age)
        self.retirement_age = int(inputs.retirement_age)
        self.plan_to_age = int(inputs.plan_to_age)

        self.ages: List[int] = list(range(self.current_age, self.plan_to_age + 1))
        self.retired: List[bool] = [age >= self.retirement_age for age in self.ages]
        self.income: List[float] = [0.0] * len(self.ages)
        self.budgets: List[float] = [0.0] * len(self.ages)

        events_by_index: Dict[int, float] = {}
        for event in inputs.one_time_events:
            idx = event.year - inputs.start_year
            events_by_index[idx] = events_by_index.get(idx, 0.0) + event.amount

        ss_annual = 0.0
        ss_age = None
        if inputs.social_security is not None:
            ss_annual = inputs.social_security.monthly_benefit * 12.0
            ss_age = inputs.social_security.claiming_age

        for i, age in enumerate(self.ages):
            flow = events_by_index.get(i, 0.0)
            if self.retired[i]:
                for src in inputs.income_sources:
                    if src.start_age is not None and age < src.start_age:
                        continue
                    if src.end_age is not None and age > src.end_age:
                        continue
                    first = src.start_age if src.start_age is not None else self.retirement_age
                    flow += src.annual_amount * (1.0 + src.growth_rate) ** max(0, age - first)
                if ss_age is not None and age >= ss_age:
                    flow += ss_annual
                ptw = inputs.part_time_work
                if ptw is not None and age - self.retirement_age < ptw.years:
                    flow += ptw.annual_income
                extra = 0.0
                for budget in inputs.annual_budgets:
                    if budget.start_age is not None and age < budget.start_age:
                        continue
                    if budget.end_age is not None and age > budget.end_age:
                        continue
                    extra += budget.annual_amount
                self.budgets[i] = extra
            self.income[i] = flow

    def __len__(self) -> int:
        return len(self.ages)

    @property
    def retirement_years(self) -> int:
        return self.plan_to_age - self.retirement_age + 1


def run_path(
    timeline: Timeline,
    returns: Sequence[float],
    policy=None,
    record: bool = False,
) -> dict:
    """Step one balance path through the timeline.

    Each year: ``start + income - withdrawal`` is invested at that year's
    return, and the result is floored at zero.  A path that reaches zero is
    exhausted and stays at zero with no further flows.  ``policy`` is an
    optional guardrail policy exposing ``evaluate`` and ``adjust``.
    """
    n = len(timeline)
    rates = returns.tolist() if isinstance(returns, np.ndarray) else list(returns)
    if len(rates) != n:
        raise ValueError(f"expected {n} annual returns, got {len(rates)}")

    balance = timeline.start_balance
    spending = timeline.base_spending
    baseline_rate: Optional[float] = None
    failure_age: Optional[int] = None
    lowest = balance
    cuts = raises = 0
    min_spending = max_spending = spending

    balances = np.zeros(n)
    years: List[YearResult] = []

    for i in range(n):
        age = timeline.ages[i]
        if failure_age is not None:
            if record:
                years.append(YearResult(
                    year_index=i, age=age, start_balance=0.0, withdrawal=0.0, income=0.0,
                    investment_return_amount=0.0, end_balance=0.0, return_rate=rates[i],
                    spending=0.0,
                ))
            continue

        start = balance
        retired = timeline.retired[i]
        year_spending = spending if retired else 0.0
        withdrawal = max(0.0, year_spending + timeline.budgets[i]) if retired else 0.0
        cash_in = timeline.income[i]

        invested = start + cash_in - withdrawal
        if invested > 0:
            gain = invested * rates[i]
        else:
            gain = 0.0
        end = invested + gain
        if end <= 0:
            end = 0.0
            failure_age = age

        trigger = None
        if retired and policy is not None and failure_age is None and start > 0:
            rate = year_spending / start
            if baseline_rate is None:
                baseline_rate = rate
            else:
                trigger = policy.evaluate(rate, baseline_rate)
                if trigger == "cut":
                    cuts += 1
                elif trigger == "raise":
                    raises += 1
                spending = policy.adjust(spending, trigger)
            min_spending = min(min_spending, spending)
            max_spending = max(max_spending, spending)

        balance = end
        balances[i] = end
        lowest = min(lowest, end)

        if record:
            years.append(YearResult(
                year_index=i, age=age, start_balance=start, withdrawal=withdrawal, income=cash_in,
                investment_return_amount=gain, end_balance=end, return_rate=rates[i],
                spending=year_spending, guardrail_triggered=trigger,
            ))

    return {
        "balances": balances,
        "failure_age": failure_age,
        "lowest_balance": lowest,
        "cuts": cuts,
        "raises": raises,
        "min_spending": min_spending,
        "max_spending": max_spending,
        "final_spending": spending,
        "years": years,
    }


def runs_out_age(balances: Sequence[float], ages: Sequence[int]) -> Optional[int]:
    for bal, age in zip(balances, ages):
        if bal <= 0:
            return age
    return None


__all__ = ["Timeline", "run_path", "runs_out_age"]
