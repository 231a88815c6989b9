"""Economic assumptions and profile defaults.

Defaults ship in ``data/defaults.json``:

* 5 % real return, the long-run average of a balanced 60/40 portfolio after
  inflation, with 7 % / 3 % as the optimistic and pessimistic cases.
* 12 % volatility for a diversified portfolio.
* Plan to age 95, since roughly a quarter of 65-year-olds live past 90.
* 90 % target success rate and 1,000 Monte Carlo paths.

Example
-------

>>> resolve_assumptions({"real_return": 0.04}).real_return
0.04
>>> resolve_assumptions().life_expectancy
95
"""

from __future__ import annotations

import json
import math
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger
from pydantic import BaseModel, ValidationError

from ..errors import InputValidationError
from ..models import Assumptions, GuardrailsConfig, SimulationInputs

_DEFAULTS_PATH = Path(__file__).resolve().parent.parent / "data" / "defaults.json"
_DAYS_PER_YEAR = 365.25


def load_defaults(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load the defaults file.  If ``path`` is not provided, load the file
    shipped with the package.

    Parameters
    ----------
    path : Path, optional
        Path to a JSON file with ``assumptions``, ``guardrails`` and ``cache``
        sections.

    Returns
    -------
    dict
        The parsed defaults.
    """
    p = path or _DEFAULTS_PATH
    with open(p, "r", encoding="utf-8") as f:
        return json.load(f)


def as_input_error(exc: ValidationError, what: str) -> InputValidationError:
    """Translate a pydantic ``ValidationError`` into :class:`InputValidationError`."""
    missing: List[str] = []
    problems: List[str] = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or what
        if err.get("type") == "missing":
            missing.append(field)
        else:
            problems.append(f"{field}: {err.get('msg')}")
    message = f"Invalid {what}"
    if missing:
        message += f"; missing required inputs: {', '.join(missing)}"
    if problems:
        message += f"; {'; '.join(problems)}"
    return InputValidationError(message, missing_inputs=missing)


def _as_dict(value: Union[BaseModel, Mapping[str, Any], None]) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, BaseModel):
        return value.model_dump()
    return dict(value)


def resolve_assumptions(
    overrides: Union[Assumptions, Mapping[str, Any], None] = None,
    defaults_path: Optional[Path] = None,
) -> Assumptions:
    """Fill every missing assumption with its default.

    ``None`` values in ``overrides`` count as "not set", which is how
    user-level settings arrive from the form and the persistence layer.
    """
    if isinstance(overrides, Assumptions):
        return overrides
    values = dict(load_defaults(defaults_path)["assumptions"])
    values.update({k: v for k, v in _as_dict(overrides).items() if v is not None})
    try:
        return Assumptions.model_validate(values)
    except ValidationError as exc:
        raise as_input_error(exc, "assumptions") from exc


def guardrails_with_defaults(
    config: Union[GuardrailsConfig, Mapping[str, Any], None] = None,
    defaults_path: Optional[Path] = None,
) -> GuardrailsConfig:
    if isinstance(config, GuardrailsConfig):
        return config
    values = dict(load_defaults(defaults_path)["guardrails"])
    values.update({k: v for k, v in _as_dict(config).items() if v is not None})
    try:
        return GuardrailsConfig.model_validate(values)
    except ValidationError as exc:
        raise as_input_error(exc, "guardrails configuration") from exc


def cache_ttl_hours(defaults_path: Optional[Path] = None) -> float:
    return float(load_defaults(defaults_path).get("cache", {}).get("ttl_hours", 24))


def retirement_age_from_date(current_age: int, retirement_date: date, today: Optional[date] = None) -> int:
    """Whole retirement age for a target retirement date.

    The fractional years until ``retirement_date`` are rounded half up.  A date
    in the past means the person is already retired at ``current_age``.
    """
    today = today or date.today()
    years_until = (retirement_date - today).days / _DAYS_PER_YEAR
    return max(int(current_age), int(math.floor(current_age + years_until + 0.5)))


def coerce_inputs(inputs: Union[SimulationInputs, Mapping[str, Any]]) -> SimulationInputs:
    if isinstance(inputs, SimulationInputs):
        return inputs
    try:
        return SimulationInputs.model_validate(dict(inputs))
    except ValidationError as exc:
        raise as_input_error(exc, "simulation inputs") from exc


def resolve_inputs(
    inputs: Union[SimulationInputs, Mapping[str, Any]],
    assumptions: Assumptions,
) -> SimulationInputs:
    """Validate ``inputs`` and fill ``plan_to_age`` from the life expectancy."""
    resolved = coerce_inputs(inputs)
    if resolved.plan_to_age is None:
        if resolved.retirement_age > assumptions.life_expectancy:
            raise InputValidationError(
                f"retirement_age {resolved.retirement_age} is after the planning "
                f"horizon {assumptions.life_expectancy}"
            )
        logger.debug("plan_to_age not set, using life expectancy {}", assumptions.life_expectancy)
        resolved = resolved.model_copy(update={"plan_to_age": assumptions.life_expectancy})
    return resolved


def require_ready(inputs: SimulationInputs, need_spending: bool = True) -> None:
    """Raise when the profile is missing what the simulator cannot do without."""
    missing = []
    if inputs.current_net_worth <= 0:
        missing.append("portfolio value")
    if need_spending and inputs.annual_spending <= 0:
        missing.append("annual spending")
    if missing:
        raise InputValidationError(f"Missing required inputs: {', '.join(missing)}", missing_inputs=missing)


__all__ = [
    "load_defaults",
    "as_input_error",
    "resolve_assumptions",
    "guardrails_with_defaults",
    "cache_ttl_hours",
    "retirement_age_from_date",
    "coerce_inputs",
    "resolve_inputs",
    "require_ready",
]
