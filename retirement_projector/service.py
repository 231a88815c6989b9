"""Service boundary used by the app.

Every method returns ``Ok(value)`` or ``Err(kind, message, missing_inputs)``
instead of raising, so the UI can show "complete your profile" prompts for
validation problems and a generic failure for everything else.  Exceptions
outside :class:`EngineError` are bugs and propagate.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional, Union

from loguru import logger

from .calculators import guardrails, monte_carlo, projection, what_if, withdrawal
from .calculators.assumptions import cache_ttl_hours
from .calculators.cache import InMemorySimulationCache, SimulationCache
from .errors import EngineError, Err, Ok, Result, error_kind
from .models import (
    Assumptions,
    GuardrailsProjection,
    MaxWithdrawalResult,
    ProjectionResult,
    SensitivityReport,
    SimulationInputs,
    SimulationResult,
    WhatIfOverrides,
    WhatIfResult,
)

Inputs = Union[SimulationInputs, Mapping[str, Any]]
AssumptionsLike = Union[Assumptions, Mapping[str, Any], None]


def _guard(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Result:
    try:
        return Ok(fn(*args, **kwargs))
    except EngineError as exc:
        kind = error_kind(exc)
        missing = list(getattr(exc, "missing_inputs", []))
        logger.warning("{} failed ({}): {}", fn.__name__, kind.value, exc)
        return Err(kind=kind, message=str(exc), missing_inputs=missing)


class PlannerService:
    """Holds the process-wide simulation cache and wraps each engine."""

    def __init__(self, cache: Optional[SimulationCache] = None):
        if cache is None:
            cache = InMemorySimulationCache(ttl=timedelta(hours=cache_ttl_hours()))
        self.cache = cache

    def project(self, inputs: Inputs, assumptions: AssumptionsLike = None) -> Result[ProjectionResult]:
        return _guard(projection.project, inputs, assumptions)

    def project_with_guardrails(
        self, inputs: Inputs, assumptions: AssumptionsLike = None, config: Optional[Mapping[str, Any]] = None
    ) -> Result[GuardrailsProjection]:
        return _guard(guardrails.project_with_guardrails, inputs, assumptions, config)

    def run_simulation(
        self,
        inputs: Inputs,
        assumptions: AssumptionsLike = None,
        iterations: Optional[int] = None,
        skip_cache: bool = False,
        seed: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Result[SimulationResult]:
        return _guard(
            monte_carlo.run_simulation, inputs, assumptions,
            iterations=iterations, skip_cache=skip_cache, cache=self.cache, seed=seed, cancel=cancel,
        )

    def find_max_sustainable_withdrawal(
        self,
        inputs: Inputs,
        assumptions: AssumptionsLike = None,
        target_success_rate: Optional[float] = None,
        skip_cache: bool = False,
        seed: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
        **search: Any,
    ) -> Result[MaxWithdrawalResult]:
        return _guard(
            withdrawal.find_max_sustainable_withdrawal, inputs, assumptions,
            target_success_rate=target_success_rate, skip_cache=skip_cache, cache=self.cache,
            seed=seed, cancel=cancel, **search,
        )

    def run_what_if(
        self,
        baseline_inputs: Inputs,
        overrides: Union[WhatIfOverrides, Mapping[str, Any]],
        assumptions: AssumptionsLike = None,
        seed: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Result[WhatIfResult]:
        return _guard(what_if.run_what_if, baseline_inputs, overrides, assumptions, seed=seed, cancel=cancel)

    def run_sensitivity_analysis(
        self,
        inputs: Inputs,
        assumptions: AssumptionsLike = None,
        iterations: int = 500,
        seed: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Result[SensitivityReport]:
        return _guard(
            what_if.run_sensitivity_analysis, inputs, assumptions,
            iterations=iterations, seed=seed, cancel=cancel,
        )

    def invalidate(self, fingerprint: str) -> None:
        self.cache.invalidate(fingerprint)

    def clear_cache(self) -> int:
        n = self.cache.clear()
        logger.info("cleared {} cached results", n)
        return n


__all__ = ["PlannerService"]
