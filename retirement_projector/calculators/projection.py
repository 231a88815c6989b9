"""Deterministic year-by-year projection.

Three fixed-rate trajectories (expected, optimistic, pessimistic) are stepped
through the same timeline.  The expected one is returned year by year, the
other two as end-of-year balances for the chart band.

Status
------

* ``behind``: the expected trajectory runs out on or before ``plan_to_age``.
* ``at_risk``: the expected trajectory survives, but the pessimistic one does
  not, or the expected terminal balance covers fewer than
  :data:`STATUS_MARGIN_YEARS` years of spending.
* ``on_track``: otherwise.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from loguru import logger

from ..models import Assumptions, ProjectionResult, SimulationInputs
from .assumptions import resolve_assumptions, resolve_inputs
from .timeline import Timeline, run_path, runs_out_age

STATUS_MARGIN_YEARS = 5


def classify_status(
    expected_runs_out_age: Optional[int],
    pessimistic_runs_out_age: Optional[int],
    terminal_balance: float,
    annual_spending: float,
    margin_years: int = STATUS_MARGIN_YEARS,
) -> str:
    if expected_runs_out_age is not None:
        return "behind"
    if pessimistic_runs_out_age is not None:
        return "at_risk"
    if terminal_balance < margin_years * annual_spending:
        return "at_risk"
    return "on_track"


def project(
    inputs: Union[SimulationInputs, Mapping[str, Any]],
    assumptions: Union[Assumptions, Mapping[str, Any], None] = None,
) -> ProjectionResult:
    """Project the portfolio at fixed real returns.

    Parameters
    ----------
    inputs : SimulationInputs or dict
        The profile snapshot.  ``plan_to_age`` defaults to the life expectancy.
    assumptions : Assumptions or dict, optional
        Overrides for the packaged defaults.

    Returns
    -------
    ProjectionResult
        Expected years, the optimistic and pessimistic balances, runs-out ages
        and the status classification.
    """
    assumptions = resolve_assumptions(assumptions)
    resolved = resolve_inputs(inputs, assumptions)
    timeline = Timeline(resolved)
    n = len(timeline)

    expected = run_path(timeline, [assumptions.real_return] * n, record=True)
    optimistic = run_path(timeline, [assumptions.optimistic_return] * n)
    pessimistic = run_path(timeline, [assumptions.pessimistic_return] * n)

    years = expected["years"]
    optimistic_balances = optimistic["balances"].tolist()
    pessimistic_balances = pessimistic["balances"].tolist()

    expected_out = runs_out_age([y.end_balance for y in years], timeline.ages)
    optimistic_out = runs_out_age(optimistic_balances, timeline.ages)
    pessimistic_out = runs_out_age(pessimistic_balances, timeline.ages)

    retirement_idx = timeline.retirement_age - timeline.current_age
    at_retirement = years[retirement_idx].start_balance if retirement_idx < n else 0.0
    terminal = years[-1].end_balance if years else 0.0

    status = classify_status(expected_out, pessimistic_out, terminal, resolved.annual_spending)
    logger.debug("projection {}..{}: status {}", timeline.current_age, timeline.plan_to_age, status)

    return ProjectionResult(
        years=years,
        optimistic_balances=optimistic_balances,
        pessimistic_balances=pessimistic_balances,
        status=status,
        expected_runs_out_age=expected_out,
        optimistic_runs_out_age=optimistic_out,
        pessimistic_runs_out_age=pessimistic_out,
        projected_net_worth_at_retirement=at_retirement,
        years_until_retirement=timeline.retirement_age - timeline.current_age,
        assumptions=assumptions,
    )


__all__ = ["STATUS_MARGIN_YEARS", "classify_status", "project"]
