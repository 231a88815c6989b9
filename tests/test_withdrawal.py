"""Tests for the maximum sustainable withdrawal solver."""

import math

import pytest

from retirement_projector.calculators import monte_carlo
from retirement_projector.calculators.assumptions import resolve_assumptions
from retirement_projector.calculators.cache import InMemorySimulationCache
from retirement_projector.calculators.withdrawal import compare_to_current, find_max_sustainable_withdrawal
from retirement_projector.errors import InputValidationError


def _base_inputs(**overrides) -> dict:
    inputs = {
        "current_net_worth": 1_000_000.0,
        "annual_spending": 70_000.0,
        "current_age": 65,
        "retirement_age": 65,
        "plan_to_age": 95,
        "start_year": 2025,
    }
    inputs.update(overrides)
    return inputs


def test_solver_brackets_the_target():
    a = resolve_assumptions({"iterations": 300})
    res = find_max_sustainable_withdrawal(_base_inputs(), a, seed=11, search_iterations=300)
    assert res.feasible
    assert res.converged
    assert not res.capped
    assert res.search_steps <= 30
    assert 0 < res.max_withdrawal < 70_000
    assert res.success_rate >= 0.9

    over = monte_carlo.run_simulation(
        _base_inputs(annual_spending=res.max_withdrawal + 100), a, iterations=300, seed=11
    )
    assert over.success_rate < 0.9


def test_solver_output_fields():
    a = resolve_assumptions({"iterations": 200})
    res = find_max_sustainable_withdrawal(_base_inputs(), a, seed=2, search_iterations=200)
    assert res.monthly_amount == pytest.approx(res.max_withdrawal / 12)
    assert res.withdrawal_rate == pytest.approx(res.max_withdrawal / 1_000_000)
    assert res.target_success_rate == pytest.approx(0.9)
    cmp = res.comparison
    assert cmp.current_spending == 70_000
    assert not cmp.can_afford_current_spending
    assert cmp.difference == pytest.approx(res.max_withdrawal - 70_000)
    assert cmp.current_withdrawal_rate == pytest.approx(0.07)


def test_comparison_percent_rounding():
    cmp = compare_to_current(45_678.0, 40_000.0, 1_000_000.0)
    assert cmp.percent_difference == 14.2
    assert cmp.can_afford_current_spending
    assert compare_to_current(45_678.0, 0.0, 1_000_000.0).percent_difference is None


def test_upper_bound_returned_when_it_meets_target():
    a = resolve_assumptions({"real_return": 0.20, "volatility": 0.0, "iterations": 10})
    res = find_max_sustainable_withdrawal(_base_inputs(), a, seed=1, search_iterations=10)
    assert res.max_withdrawal == pytest.approx(100_000.0)
    assert res.search_steps == 1
    assert res.success_rate == 1.0
    assert res.capped
    assert not res.converged


def test_infeasible_when_zero_spending_fails():
    inputs = _base_inputs(one_time_events=[{"name": "loss", "year": 2025, "amount": -5_000_000.0}])
    a = resolve_assumptions({"iterations": 20})
    res = find_max_sustainable_withdrawal(inputs, a, seed=1, search_iterations=20)
    assert not res.feasible
    assert res.max_withdrawal == 0.0
    assert res.success_rate == 0.0
    assert res.search_steps == 2


def test_step_bound_stops_search():
    a = resolve_assumptions({"iterations": 50})
    res = find_max_sustainable_withdrawal(_base_inputs(), a, seed=3, search_iterations=50,
                                          tolerance=0.01, max_steps=5)
    assert res.search_steps == 5
    assert not res.converged


def test_steps_bounded_by_log_of_range():
    a = resolve_assumptions({"iterations": 50})
    res = find_max_sustainable_withdrawal(_base_inputs(), a, seed=3, search_iterations=50)
    # two bound probes plus ceil(log2(100000 / 100)) bisections
    assert res.search_steps <= 2 + math.ceil(math.log2(100_000 / 100))


def test_result_is_cached():
    cache = InMemorySimulationCache()
    a = resolve_assumptions({"iterations": 50})
    first = find_max_sustainable_withdrawal(_base_inputs(), a, seed=5, search_iterations=50, cache=cache)
    second = find_max_sustainable_withdrawal(_base_inputs(), a, seed=5, search_iterations=50, cache=cache)
    assert not first.from_cache
    assert second.from_cache
    assert second.max_withdrawal == first.max_withdrawal


def test_unseeded_search_is_not_cached():
    cache = InMemorySimulationCache()
    a = resolve_assumptions({"iterations": 30})
    find_max_sustainable_withdrawal(_base_inputs(), a, search_iterations=30, max_steps=4, cache=cache)
    again = find_max_sustainable_withdrawal(_base_inputs(), a, search_iterations=30, max_steps=4, cache=cache)
    assert not again.from_cache
    assert len(cache) == 0


def test_invalid_target_rejected():
    with pytest.raises(InputValidationError):
        find_max_sustainable_withdrawal(_base_inputs(), target_success_rate=1.5, seed=1)
    with pytest.raises(InputValidationError):
        find_max_sustainable_withdrawal(_base_inputs(current_net_worth=0.0), seed=1)
