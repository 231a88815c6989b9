"""Error taxonomy shared by the projection engines.

Engines raise one of the :class:`EngineError` subclasses below.  The service
layer (:mod:`retirement_projector.service`) turns them into tagged results so
the UI can tell "complete your profile" problems apart from internal faults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar, Union


class EngineError(Exception):
    """Base class for every failure raised by the engines."""


class InputValidationError(EngineError):
    """Inputs are malformed, contradictory or incomplete."""

    def __init__(self, message: str, missing_inputs: Optional[List[str]] = None):
        super().__init__(message)
        self.missing_inputs = list(missing_inputs or [])


class NumericalFault(EngineError):
    """A computation produced NaN/inf.  Always a defect, never user error."""


class SimulationCancelled(EngineError):
    """The caller asked a long-running simulation to stop."""


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NUMERICAL = "numerical"
    CANCELLED = "cancelled"


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    missing_inputs: List[str] = field(default_factory=list)
    ok: bool = field(default=False, init=False)


Result = Union[Ok[T], Err]


def error_kind(exc: EngineError) -> ErrorKind:
    if isinstance(exc, InputValidationError):
        return ErrorKind.VALIDATION
    if isinstance(exc, SimulationCancelled):
        return ErrorKind.CANCELLED
    return ErrorKind.NUMERICAL


__all__ = [
    "EngineError",
    "InputValidationError",
    "NumericalFault",
    "SimulationCancelled",
    "ErrorKind",
    "Ok",
    "Err",
    "Result",
    "error_kind",
]
