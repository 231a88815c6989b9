"""What-if scenarios and sensitivity analysis.

A scenario is a partial set of overrides applied to a baseline profile.  The
baseline and the scenario run with the same seed and without the cache so the
reported delta only reflects the changed inputs.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
from loguru import logger
from pydantic import ValidationError

from ..errors import InputValidationError
from ..models import (
    Assumptions,
    SensitivityItem,
    SensitivityReport,
    SimulationInputs,
    WhatIfOverrides,
    WhatIfResult,
)
from . import social_security as ss_calc
from .assumptions import as_input_error, coerce_inputs, require_ready, resolve_assumptions, resolve_inputs
from .monte_carlo import run_simulation


def _money(value: float) -> str:
    return f"${value:,.0f}"


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def _change(label: str, old: str, new: str) -> str:
    return f"{label}: {old} → {new}"


def merge_overrides(
    baseline: SimulationInputs,
    overrides: Union[WhatIfOverrides, Mapping[str, Any]],
    assumptions: Assumptions,
) -> Tuple[SimulationInputs, Assumptions, List[str]]:
    """Apply ``overrides`` to a resolved baseline.

    Only the provided fields change.  The merged inputs and assumptions are
    validated again, so an override that breaks the age ordering raises
    :class:`InputValidationError`.

    Returns
    -------
    tuple
        ``(inputs, assumptions, changes)`` where ``changes`` holds one
        readable line per field that actually differs from the baseline.
    """
    if not isinstance(overrides, WhatIfOverrides):
        try:
            overrides = WhatIfOverrides.model_validate(dict(overrides))
        except ValidationError as exc:
            raise as_input_error(exc, "what-if overrides") from exc

    data: Dict[str, Any] = baseline.model_dump()
    assumption_data: Dict[str, Any] = assumptions.model_dump()
    changes: List[str] = []

    o = overrides
    if o.annual_spending is not None and o.annual_spending != baseline.annual_spending:
        data["annual_spending"] = o.annual_spending
        changes.append(_change("Spending", _money(baseline.annual_spending), _money(o.annual_spending)))
    if o.retirement_age is not None and o.retirement_age != baseline.retirement_age:
        data["retirement_age"] = o.retirement_age
        changes.append(_change("Retirement age", str(baseline.retirement_age), str(o.retirement_age)))
    if o.plan_to_age is not None and o.plan_to_age != baseline.plan_to_age:
        data["plan_to_age"] = o.plan_to_age
        changes.append(_change("Plan to age", str(baseline.plan_to_age), str(o.plan_to_age)))

    if o.ss_claiming_age is not None:
        ss = baseline.social_security
        if ss is None:
            raise InputValidationError(
                "Cannot change the Social Security claiming age without a benefit",
                missing_inputs=["social security benefit"],
            )
        if o.ss_claiming_age != ss.claiming_age:
            benefit = ss_calc.rebase_benefit(
                ss.monthly_benefit, ss.claiming_age, o.ss_claiming_age, ss.full_retirement_age
            )
            data["social_security"] = dict(
                data["social_security"], claiming_age=o.ss_claiming_age, monthly_benefit=benefit
            )
            changes.append(_change("Social Security age", str(ss.claiming_age), str(o.ss_claiming_age)))

    if o.part_time_income is not None or o.part_time_years is not None:
        ptw = baseline.part_time_work
        old_income = ptw.annual_income if ptw else 0.0
        old_years = ptw.years if ptw else 0
        new_income = old_income if o.part_time_income is None else o.part_time_income
        new_years = old_years if o.part_time_years is None else o.part_time_years
        data["part_time_work"] = {"annual_income": new_income, "years": new_years}
        if new_income != old_income:
            changes.append(_change("Part-time income", _money(old_income), _money(new_income)))
        if new_years != old_years:
            changes.append(_change("Part-time years", str(old_years), str(new_years)))

    if o.guardrails_enabled is not None and o.guardrails_enabled != baseline.guardrails.is_enabled:
        data["guardrails"] = dict(data["guardrails"], is_enabled=o.guardrails_enabled)
        changes.append(_change(
            "Guardrails",
            "on" if baseline.guardrails.is_enabled else "off",
            "on" if o.guardrails_enabled else "off",
        ))

    if o.real_return is not None and o.real_return != assumptions.real_return:
        assumption_data["real_return"] = o.real_return
        changes.append(_change("Real return", _pct(assumptions.real_return), _pct(o.real_return)))
    if o.volatility is not None and o.volatility != assumptions.volatility:
        assumption_data["volatility"] = o.volatility
        changes.append(_change("Volatility", _pct(assumptions.volatility), _pct(o.volatility)))
    if o.iterations is not None:
        assumption_data["iterations"] = o.iterations

    return coerce_inputs(data), resolve_assumptions(assumption_data), changes


def _common_seed(seed: Optional[int]) -> int:
    return seed if seed is not None else int(np.random.default_rng().integers(0, 2**32 - 1))


def run_what_if(
    baseline_inputs: Union[SimulationInputs, Mapping[str, Any]],
    overrides: Union[WhatIfOverrides, Mapping[str, Any]],
    assumptions: Union[Assumptions, Mapping[str, Any], None] = None,
    seed: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> WhatIfResult:
    assumptions = resolve_assumptions(assumptions)
    baseline = resolve_inputs(baseline_inputs, assumptions)
    require_ready(baseline)
    inputs, scenario_assumptions, changes = merge_overrides(baseline, overrides, assumptions)
    seed = _common_seed(seed)
    n_paths = scenario_assumptions.iterations

    base = run_simulation(baseline, assumptions, iterations=n_paths, skip_cache=True, seed=seed, cancel=cancel)
    scenario = run_simulation(
        inputs, scenario_assumptions, iterations=n_paths, skip_cache=True, seed=seed, cancel=cancel
    )
    logger.debug("what-if with {} changes: {:.1%} -> {:.1%}", len(changes), base.success_rate, scenario.success_rate)

    return WhatIfResult(
        success_rate=scenario.success_rate,
        baseline_success_rate=base.success_rate,
        success_rate_delta=scenario.success_rate - base.success_rate,
        changes_from_baseline=changes,
        inputs=inputs,
        assumptions=scenario_assumptions,
        simulation=scenario,
    )


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def run_sensitivity_analysis(
    inputs: Union[SimulationInputs, Mapping[str, Any]],
    assumptions: Union[Assumptions, Mapping[str, Any], None] = None,
    iterations: int = 500,
    seed: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> SensitivityReport:
    """Success-rate swing from moving one input at a time.

    Spending is scaled by 0.8 / 1.2, real return and volatility by 0.7 / 1.3,
    and the planning horizon moved by five years either way.  Items are sorted
    by impact, largest first.
    """
    assumptions = resolve_assumptions(assumptions)
    baseline = resolve_inputs(inputs, assumptions)
    require_ready(baseline)
    seed = _common_seed(seed)

    def success(overrides: Dict[str, Any]) -> float:
        merged, merged_assumptions, _ = merge_overrides(baseline, overrides, assumptions)
        return run_simulation(
            merged, merged_assumptions, iterations=iterations, skip_cache=True, seed=seed, cancel=cancel
        ).success_rate

    base_rate = success({})
    plan_to = baseline.plan_to_age
    variations = [
        ("Annual spending", "annual_spending",
         baseline.annual_spending * 0.8, baseline.annual_spending * 1.2),
        ("Real return", "real_return",
         _clamp(assumptions.real_return * 0.7, -0.10, 0.20), _clamp(assumptions.real_return * 1.3, -0.10, 0.20)),
        ("Volatility", "volatility",
         _clamp(assumptions.volatility * 0.7, 0.0, 0.50), _clamp(assumptions.volatility * 1.3, 0.0, 0.50)),
        ("Planning horizon", "plan_to_age",
         max(baseline.retirement_age, plan_to - 5), min(120, plan_to + 5)),
    ]

    items = []
    for label, field, low, high in variations:
        low_rate = success({field: low})
        high_rate = success({field: high})
        items.append(SensitivityItem(
            variable=label,
            impact=abs(high_rate - low_rate),
            low_value=float(low),
            low_success_rate=low_rate,
            high_value=float(high),
            high_success_rate=high_rate,
        ))
    items.sort(key=lambda item: item.impact, reverse=True)
    return SensitivityReport(baseline_success_rate=base_rate, items=items)


__all__ = ["merge_overrides", "run_what_if", "run_sensitivity_analysis"]
