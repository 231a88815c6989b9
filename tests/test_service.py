"""Tests for the Ok/Err service boundary."""

import threading

from retirement_projector.calculators.cache import InMemorySimulationCache
from retirement_projector.errors import ErrorKind
from retirement_projector.service import PlannerService


def _base_inputs(**overrides) -> dict:
    inputs = {
        "current_net_worth": 1_000_000.0,
        "annual_spending": 40_000.0,
        "current_age": 60,
        "retirement_age": 65,
        "plan_to_age": 95,
        "start_year": 2025,
    }
    inputs.update(overrides)
    return inputs


def test_ok_results():
    service = PlannerService()
    projected = service.project(_base_inputs())
    assert projected.ok
    assert projected.value.status == "on_track"
    guarded = service.project_with_guardrails(_base_inputs(), config={"is_enabled": True})
    assert guarded.ok
    assert guarded.value.is_enabled


def test_missing_profile_fields_are_validation_errors():
    service = PlannerService()
    res = service.run_simulation(_base_inputs(current_net_worth=0.0, annual_spending=0.0), iterations=10)
    assert not res.ok
    assert res.kind == ErrorKind.VALIDATION
    assert res.missing_inputs == ["portfolio value", "annual spending"]


def test_bad_ages_are_validation_errors():
    res = PlannerService().project(_base_inputs(retirement_age=55))
    assert not res.ok
    assert res.kind == ErrorKind.VALIDATION


def test_cancellation_is_reported():
    cancel = threading.Event()
    cancel.set()
    res = PlannerService().run_simulation(_base_inputs(), iterations=10, seed=1, cancel=cancel)
    assert not res.ok
    assert res.kind == ErrorKind.CANCELLED


def test_service_shares_its_cache():
    cache = InMemorySimulationCache()
    service = PlannerService(cache=cache)
    first = service.run_simulation(_base_inputs(), iterations=20, seed=1)
    second = service.run_simulation(_base_inputs(), iterations=20, seed=1)
    assert first.ok and second.ok
    assert not first.value.from_cache
    assert second.value.from_cache
    service.invalidate(first.value.fingerprint)
    third = service.run_simulation(_base_inputs(), iterations=20, seed=1)
    assert not third.value.from_cache
    assert service.clear_cache() == 1


def test_solver_what_if_and_sensitivity_through_service():
    service = PlannerService()
    assumptions = {"iterations": 50}
    solved = service.find_max_sustainable_withdrawal(_base_inputs(), assumptions, seed=1, search_iterations=50)
    assert solved.ok
    assert solved.value.max_withdrawal > 0
    compared = service.run_what_if(_base_inputs(), {"annual_spending": 45_000.0}, assumptions, seed=1)
    assert compared.ok
    assert compared.value.changes_from_baseline == ["Spending: $40,000 → $45,000"]
    report = service.run_sensitivity_analysis(_base_inputs(), assumptions, iterations=50, seed=1)
    assert report.ok
    assert len(report.value.items) == 4


def test_bad_what_if_overrides_are_validation_errors():
    service = PlannerService()
    negative = service.run_what_if(_base_inputs(), {"retirement_age": -1}, {"iterations": 10}, seed=1)
    assert not negative.ok
    assert negative.kind == ErrorKind.VALIDATION
    assert "retirement_age" in negative.message

    unknown = service.run_what_if(_base_inputs(), {"retire_age": 70}, {"iterations": 10}, seed=1)
    assert not unknown.ok
    assert unknown.kind == ErrorKind.VALIDATION
