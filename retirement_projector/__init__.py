"""Retirement projection and Monte Carlo simulation engine.

The engines live in :mod:`retirement_projector.calculators`; the Streamlit
helpers in :mod:`retirement_projector.components`.  Most callers go through
:class:`retirement_projector.service.PlannerService`, which returns tagged
``Ok``/``Err`` results instead of raising.

Logging uses loguru and is disabled for this package by default.  Turn it on
with ``logger.enable("retirement_projector")``.
"""

from loguru import logger

from .errors import (
    EngineError,
    InputValidationError,
    NumericalFault,
    SimulationCancelled,
)
from .models import Assumptions, GuardrailsConfig, SimulationInputs, WhatIfOverrides

logger.disable(__name__)

__version__ = "0.1.0"

__all__ = [
    "EngineError",
    "InputValidationError",
    "NumericalFault",
    "SimulationCancelled",
    "Assumptions",
    "GuardrailsConfig",
    "SimulationInputs",
    "WhatIfOverrides",
]
