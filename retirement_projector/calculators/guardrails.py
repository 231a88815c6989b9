"""Guardrails dynamic-withdrawal strategy.

The first retirement year fixes a baseline withdrawal rate (spending divided
by the portfolio at the start of that year).  In every later year the current
rate is compared with two bands around that baseline:

* above ``baseline * (1 + upper_guardrail_percent)`` the portfolio is under
  pressure and next year's spending is **cut**;
* below ``baseline * (1 - lower_guardrail_percent)`` the portfolio is ahead
  of plan and next year's spending is **raised**.

Adjustments are a percentage of current spending or a fixed dollar amount.
Cuts never go below ``spending_floor`` (or zero) and raises never exceed
``spending_ceiling``.  The adjusted level persists until the next breach.

Example
-------

>>> policy = GuardrailPolicy(GuardrailsConfig(is_enabled=True))
>>> policy.evaluate(0.06, 0.04)
'cut'
>>> round(policy.adjust(50000.0, "cut"), 2)
45000.0
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from loguru import logger

from ..models import (
    Assumptions,
    GuardrailsConfig,
    GuardrailsProjection,
    GuardrailsSummary,
    SimulationInputs,
)
from . import projection
from .assumptions import guardrails_with_defaults, resolve_assumptions, resolve_inputs
from .timeline import Timeline, run_path, runs_out_age


class GuardrailPolicy:
    def __init__(self, config: GuardrailsConfig):
        self.config = config

    def evaluate(self, rate: float, baseline_rate: float) -> Optional[str]:
        if baseline_rate <= 0:
            return None
        if rate > baseline_rate * (1.0 + self.config.upper_guardrail_percent):
            return "cut"
        if rate < baseline_rate * (1.0 - self.config.lower_guardrail_percent):
            return "raise"
        return None

    def _step(self, spending: float) -> float:
        if self.config.strategy_type == "fixed":
            return float(self.config.fixed_adjustment_amount or 0.0)
        return spending * self.config.adjustment_percent

    def adjust(self, spending: float, trigger: Optional[str]) -> float:
        if trigger == "cut":
            spending = spending - self._step(spending)
            floor = self.config.spending_floor or 0.0
            return max(spending, floor, 0.0)
        if trigger == "raise":
            spending = spending + self._step(spending)
            if self.config.spending_ceiling is not None:
                spending = min(spending, self.config.spending_ceiling)
            return spending
        return spending


def policy_for(config: Optional[GuardrailsConfig]) -> Optional[GuardrailPolicy]:
    if config is None or not config.is_enabled:
        return None
    return GuardrailPolicy(config)


def project_with_guardrails(
    inputs: Union[SimulationInputs, Mapping[str, Any]],
    assumptions: Union[Assumptions, Mapping[str, Any], None] = None,
    config: Union[GuardrailsConfig, Mapping[str, Any], None] = None,
) -> GuardrailsProjection:
    """Expected-return projection with guardrail spending adjustments.

    ``config`` defaults to the guardrails stored on ``inputs``.  A disabled
    config gives exactly the deterministic projector's expected trajectory.
    """
    assumptions = resolve_assumptions(assumptions)
    resolved = resolve_inputs(inputs, assumptions)
    cfg = guardrails_with_defaults(config) if config is not None else resolved.guardrails
    timeline = Timeline(resolved)

    if not cfg.is_enabled:
        years = projection.project(resolved, assumptions).years
        outcome = {
            "cuts": 0, "raises": 0,
            "min_spending": resolved.annual_spending,
            "max_spending": resolved.annual_spending,
            "final_spending": resolved.annual_spending,
        }
    else:
        outcome = run_path(
            timeline,
            [assumptions.real_return] * len(timeline),
            policy=GuardrailPolicy(cfg),
            record=True,
        )
        years = outcome["years"]
        logger.debug(
            "guardrails projection: {} cuts, {} raises", outcome["cuts"], outcome["raises"]
        )

    balances = [y.end_balance for y in years]
    out_age = runs_out_age(balances, timeline.ages)
    if out_age is None:
        lasts_to = timeline.plan_to_age
    elif out_age == timeline.current_age:
        lasts_to = None
    else:
        lasts_to = out_age - 1

    summary = GuardrailsSummary(
        min_spending=outcome["min_spending"],
        max_spending=outcome["max_spending"],
        spending_range=outcome["max_spending"] - outcome["min_spending"],
        cut_count=outcome["cuts"],
        raise_count=outcome["raises"],
        base_spending=resolved.annual_spending,
        final_spending=outcome["final_spending"],
        final_portfolio=balances[-1] if balances else 0.0,
        portfolio_lasts_to_age=lasts_to,
        funds_last_to_plan_age=out_age is None,
    )
    return GuardrailsProjection(is_enabled=cfg.is_enabled, years=years, summary=summary)


__all__ = ["GuardrailPolicy", "policy_for", "project_with_guardrails"]
