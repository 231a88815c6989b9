"""Maximum sustainable withdrawal solver.

Bisection over annual spending in ``[0, current_net_worth * upper_rate]``.
Every probe runs the Monte Carlo engine with the same seed (common random
numbers), so success rate only moves because spending moved.  Inner probes
use ``search_iterations`` paths; the answer is then verified with the full
iteration count.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Union

import numpy as np
from loguru import logger

from ..errors import InputValidationError
from ..models import Assumptions, MaxWithdrawalResult, SimulationInputs, WithdrawalComparison
from .assumptions import require_ready, resolve_assumptions, resolve_inputs
from .cache import SimulationCache, fingerprint
from .monte_carlo import simulate


def compare_to_current(max_spending: float, current_spending: float, net_worth: float) -> WithdrawalComparison:
    difference = max_spending - current_spending
    pct = round(difference / current_spending * 100.0, 1) if current_spending > 0 else None
    return WithdrawalComparison(
        current_spending=current_spending,
        max_sustainable_spending=max_spending,
        difference=difference,
        percent_difference=pct,
        can_afford_current_spending=current_spending <= max_spending,
        current_withdrawal_rate=current_spending / net_worth if net_worth > 0 else 0.0,
    )


def find_max_sustainable_withdrawal(
    inputs: Union[SimulationInputs, Mapping[str, Any]],
    assumptions: Union[Assumptions, Mapping[str, Any], None] = None,
    target_success_rate: Optional[float] = None,
    skip_cache: bool = False,
    cache: Optional[SimulationCache] = None,
    seed: Optional[int] = None,
    search_iterations: int = 500,
    tolerance: float = 100.0,
    max_steps: int = 30,
    upper_rate: float = 0.10,
    cancel: Optional[threading.Event] = None,
) -> MaxWithdrawalResult:
    """Highest annual spending whose success rate meets the target.

    Parameters
    ----------
    inputs : SimulationInputs or dict
        Profile snapshot.  Its ``annual_spending`` is only used for the
        comparison block.
    target_success_rate : float, optional
        Defaults to ``assumptions.target_success_rate``.
    search_iterations : int
        Paths per inner probe.
    tolerance : float
        Stop once the bracket is no wider than this many dollars.
    max_steps : int
        Hard bound on the number of probes, bounds included.
    upper_rate : float
        Upper end of the search as a fraction of net worth.

    Returns
    -------
    MaxWithdrawalResult
        ``feasible`` is False when even zero spending misses the target;
        ``converged`` is False when ``max_steps`` ran out first.  ``capped``
        is True when the upper end of the range already met the target, so
        the real maximum may lie above it.
    """
    assumptions = resolve_assumptions(assumptions)
    target = assumptions.target_success_rate if target_success_rate is None else float(target_success_rate)
    if not 0 < target <= 1:
        raise InputValidationError(f"target_success_rate must be in (0, 1], got {target}")
    if search_iterations <= 0 or max_steps <= 0:
        raise InputValidationError("search_iterations and max_steps must be positive")
    resolved = resolve_inputs(inputs, assumptions)
    require_ready(resolved, need_spending=False)

    fp = fingerprint(
        "max_withdrawal", resolved, assumptions, target, search_iterations,
        tolerance, max_steps, upper_rate, seed,
    )
    if seed is None:
        cache = None
    if cache is not None and not skip_cache:
        entry = cache.get(fp)
        if entry is not None:
            logger.debug("solver cache hit {}", fp[:12])
            return entry.result.model_copy(update={"from_cache": True})

    search_seed = seed if seed is not None else int(np.random.default_rng().integers(0, 2**32 - 1))

    def success_at(spending: float, n_paths: int) -> float:
        probe = resolved.model_copy(update={"annual_spending": float(spending)})
        return simulate(probe, assumptions, n_paths, seed=search_seed, cancel=cancel).success_rate

    low, high = 0.0, float(round(resolved.current_net_worth * upper_rate))
    steps = 1
    feasible = True
    capped = False
    if success_at(high, search_iterations) >= target:
        logger.warning("upper bound {:,.0f} already meets the target, result is capped", high)
        best = high
        capped = True
        converged = False
    else:
        steps += 1
        if success_at(low, search_iterations) < target:
            logger.warning("target success rate {:.0%} unreachable even with zero spending", target)
            best = 0.0
            feasible = False
            converged = True
        else:
            while high - low > tolerance and steps < max_steps:
                mid = float(round((low + high) / 2.0))
                if mid <= low or mid >= high:
                    break
                steps += 1
                rate = success_at(mid, search_iterations)
                logger.debug("solver probe {:,.0f}: {:.1%}", mid, rate)
                if rate >= target:
                    low = mid
                else:
                    high = mid
            best = low
            converged = high - low <= tolerance
            if not converged:
                logger.warning("solver stopped after {} probes, bracket {:,.0f}", steps, high - low)

    verified = success_at(best, assumptions.iterations)
    net_worth = resolved.current_net_worth
    result = MaxWithdrawalResult(
        max_withdrawal=best,
        monthly_amount=best / 12.0,
        withdrawal_rate=best / net_worth,
        success_rate=verified,
        target_success_rate=target,
        search_steps=steps,
        converged=converged,
        feasible=feasible,
        capped=capped,
        comparison=compare_to_current(best, resolved.annual_spending, net_worth),
    )
    if cache is not None:
        cache.set(fp, result)
    return result


__all__ = ["compare_to_current", "find_max_sustainable_withdrawal"]
