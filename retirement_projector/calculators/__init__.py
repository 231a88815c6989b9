"""Projection and simulation engines.

The `calculators` package contains small, focused modules that each implement
one piece of the retirement projection logic:

* ``assumptions`` – packaged defaults, user overrides and input resolution.
* ``timeline`` – per-year cash flows and the shared year-stepping routine.
* ``projection`` – deterministic expected/optimistic/pessimistic trajectories and plan status.
* ``guardrails`` – the dynamic-withdrawal policy and its deterministic projection.
* ``monte_carlo`` – stochastic paths, success rate and percentile aggregation.
* ``cache`` – fingerprinted, time-limited result cache.
* ``withdrawal`` – maximum sustainable withdrawal solver.
* ``what_if`` – scenario overrides and sensitivity analysis.
* ``social_security`` – claiming-age adjustment of a monthly benefit.

Each module exposes a few public functions with clear parameters and returns.  See
individual docstrings for details.
"""

from . import (  # noqa: F401
    assumptions,
    cache,
    guardrails,
    monte_carlo,
    projection,
    social_security,
    timeline,
    what_if,
    withdrawal,
)

__all__ = [
    "assumptions",
    "timeline",
    "projection",
    "guardrails",
    "monte_carlo",
    "cache",
    "withdrawal",
    "what_if",
    "social_security",
]
