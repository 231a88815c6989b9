from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np
from loguru import logger

from ..errors import InputValidationError, NumericalFault, SimulationCancelled
from ..models import (
    Assumptions,
    FailureStats,
    RiskStats,
    SimulationInputs,
    SimulationResult,
    SuccessStats,
    YearResult,
)
from .assumptions import require_ready, resolve_assumptions, resolve_inputs
from .cache import SimulationCache, fingerprint
from .guardrails import policy_for
from .timeline import Timeline, run_path

SAMPLE_QUANTILES = (0.0, 0.1, 0.25, 0.5, 0.75, 0.9, 1.0)
PERCENTILES = (10, 25, 50, 75, 90)


def _draw_returns(rng: np.random.Generator, mean: float, stdev: float, n_paths: int, n_years: int) -> np.ndarray:
    if stdev == 0:
        return np.full((n_paths, n_years), mean, dtype=float)
    return rng.normal(loc=mean, scale=stdev, size=(n_paths, n_years))


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise SimulationCancelled("simulation cancelled")


def _quantile(values: np.ndarray, q: float) -> float:
    if values.size == 0:
        return 0.0
    return float(np.percentile(values, q * 100.0))


def _sample_indices(terminal: np.ndarray, years_lasted: np.ndarray) -> List[int]:
    """Path indices at fixed quantiles of the (terminal, years lasted) ranking."""
    n = terminal.size
    order = np.lexsort((np.arange(n), years_lasted, terminal))
    picked: List[int] = []
    for q in SAMPLE_QUANTILES:
        idx = int(order[int(round(q * (n - 1)))])
        if idx not in picked:
            picked.append(idx)
    return picked


def simulation_fingerprint(inputs: SimulationInputs, assumptions: Assumptions, iterations: int, seed: Optional[int]) -> str:
    return fingerprint("monte_carlo", inputs, assumptions, iterations, seed)


def simulate(
    inputs: SimulationInputs,
    assumptions: Assumptions,
    n_paths: int,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    cancel: Optional[threading.Event] = None,
) -> SimulationResult:
    """Simulate already-resolved ``inputs``.  No readiness checks, no cache."""
    timeline = Timeline(inputs)
    n_years = len(timeline)
    policy = policy_for(inputs.guardrails)
    rng = rng if rng is not None else np.random.default_rng(seed)
    returns = _draw_returns(rng, assumptions.real_return, assumptions.volatility, n_paths, n_years)

    balances = np.zeros((n_paths, n_years))
    failure_ages: List[Optional[int]] = []
    lowest = np.zeros(n_paths)
    cuts = np.zeros(n_paths, dtype=int)
    raises = np.zeros(n_paths, dtype=int)

    logger.debug("running {} paths over {} years", n_paths, n_years)
    for i in range(n_paths):
        _check_cancel(cancel)
        res = run_path(timeline, returns[i], policy=policy)
        balances[i] = res["balances"]
        failure_ages.append(res["failure_age"])
        lowest[i] = res["lowest_balance"]
        cuts[i] = res["cuts"]
        raises[i] = res["raises"]

    if not np.all(np.isfinite(balances)):
        raise NumericalFault("non-finite balance in simulated paths")

    terminal = balances[:, -1]
    succeeded = terminal > 0
    n_success = int(succeeded.sum())
    n_failure = n_paths - n_success

    retirement_years = timeline.retirement_years
    years_lasted = np.array([
        retirement_years if age is None else max(0, age - timeline.retirement_age + 1)
        for age in failure_ages
    ])
    failed_years = years_lasted[~succeeded]
    success_terminal = terminal[succeeded]

    retired_path_years = max(1, n_paths * retirement_years)
    risk = RiskStats(
        average_lowest_balance=float(np.mean(lowest)),
        percent_cut_paths=float(np.mean(cuts > 0)),
        cut_trigger_percent=float(cuts.sum()) / retired_path_years,
        raise_trigger_percent=float(raises.sum()) / retired_path_years,
    )

    percentiles: Dict[str, List[float]] = {
        f"p{p}": np.percentile(balances, p, axis=0).tolist() for p in PERCENTILES
    }

    # re-run the chosen rows with recording, same returns so same outcome
    sample_paths: List[List[YearResult]] = []
    for idx in _sample_indices(terminal, years_lasted):
        sample_paths.append(run_path(timeline, returns[idx], policy=policy, record=True)["years"])

    return SimulationResult(
        iterations=n_paths,
        success_rate=n_success / n_paths,
        success=SuccessStats(
            count=n_success,
            median_ending_balance=_quantile(success_terminal, 0.5),
            p10_ending_balance=_quantile(success_terminal, 0.1),
            p90_ending_balance=_quantile(success_terminal, 0.9),
        ),
        failure=FailureStats(
            count=n_failure,
            average_years_lasted=float(np.mean(failed_years)) if n_failure else 0.0,
            median_years_lasted=float(np.median(failed_years)) if n_failure else 0.0,
            worst_case=int(failed_years.min()) if n_failure else retirement_years,
        ),
        risk=risk,
        ages=list(timeline.ages),
        percentiles=percentiles,
        sample_paths=sample_paths,
        fingerprint=simulation_fingerprint(inputs, assumptions, n_paths, seed),
    )


def run_simulation(
    inputs: Union[SimulationInputs, Mapping[str, Any]],
    assumptions: Union[Assumptions, Mapping[str, Any], None] = None,
    iterations: Optional[int] = None,
    skip_cache: bool = False,
    cache: Optional[SimulationCache] = None,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    cancel: Optional[threading.Event] = None,
) -> SimulationResult:
    """Run ``iterations`` stochastic paths and aggregate them.

    Returns are drawn up front as an ``(iterations, years)`` matrix from
    ``rng`` (or a generator seeded with ``seed``), so a fixed seed always
    reproduces the same result.  Guardrails apply inside every path when
    ``inputs.guardrails.is_enabled``.

    With a ``cache``, a fresh entry for the same fingerprint is returned with
    ``from_cache=True``; ``skip_cache`` forces a recompute that overwrites it.
    Only seeded runs without an injected ``rng`` are cached, since nothing
    else is reproducible from the fingerprint.
    """
    assumptions = resolve_assumptions(assumptions)
    n_paths = assumptions.iterations if iterations is None else int(iterations)
    if n_paths <= 0:
        raise InputValidationError(f"iterations must be positive, got {n_paths}")
    resolved = resolve_inputs(inputs, assumptions)
    require_ready(resolved)

    fp = simulation_fingerprint(resolved, assumptions, n_paths, seed)
    if seed is None or rng is not None:
        cache = None
    if cache is not None and not skip_cache:
        entry = cache.get(fp)
        if entry is not None:
            logger.debug("monte carlo cache hit {}", fp[:12])
            return entry.result.model_copy(update={"from_cache": True, "cached_at": entry.computed_at})
        logger.debug("monte carlo cache miss {}", fp[:12])

    result = simulate(resolved, assumptions, n_paths, seed=seed, rng=rng, cancel=cancel)
    logger.debug("success rate {:.1%} over {} paths", result.success_rate, n_paths)

    if cache is not None:
        cache.set(fp, result)
    return result


__all__ = ["simulate", "run_simulation", "simulation_fingerprint", "SAMPLE_QUANTILES"]
