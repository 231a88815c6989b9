"""Tests for what-if scenarios and sensitivity analysis."""

import pytest

from retirement_projector.calculators import monte_carlo
from retirement_projector.calculators.assumptions import resolve_assumptions, resolve_inputs
from retirement_projector.calculators.what_if import merge_overrides, run_sensitivity_analysis, run_what_if
from retirement_projector.errors import InputValidationError


def _base_inputs(**overrides) -> dict:
    inputs = {
        "current_net_worth": 1_200_000.0,
        "annual_spending": 60_000.0,
        "current_age": 62,
        "retirement_age": 65,
        "plan_to_age": 95,
        "start_year": 2025,
        "social_security": {"claiming_age": 67, "monthly_benefit": 2_000.0},
    }
    inputs.update(overrides)
    return inputs


def _resolved(**overrides):
    a = resolve_assumptions({"iterations": 300})
    return resolve_inputs(_base_inputs(**overrides), a), a


def test_spending_change_described():
    baseline, a = _resolved()
    inputs, _, changes = merge_overrides(baseline, {"annual_spending": 54_000.0}, a)
    assert inputs.annual_spending == 54_000.0
    assert changes == ["Spending: $60,000 → $54,000"]


def test_no_overrides_no_changes():
    baseline, a = _resolved()
    inputs, merged_assumptions, changes = merge_overrides(baseline, {}, a)
    assert changes == []
    assert inputs == baseline
    assert merged_assumptions == a


def test_unchanged_values_not_reported():
    baseline, a = _resolved()
    _, _, changes = merge_overrides(baseline, {"annual_spending": 60_000.0, "retirement_age": 65}, a)
    assert changes == []


def test_claiming_age_rebases_benefit():
    baseline, a = _resolved()
    inputs, _, changes = merge_overrides(baseline, {"ss_claiming_age": 70}, a)
    assert inputs.social_security.claiming_age == 70
    assert inputs.social_security.monthly_benefit == pytest.approx(2_480.0)
    assert changes == ["Social Security age: 67 → 70"]

    inputs, _, _ = merge_overrides(baseline, {"ss_claiming_age": 62}, a)
    assert inputs.social_security.monthly_benefit == pytest.approx(2_000.0 * 0.65)


def test_claiming_age_without_benefit_rejected():
    baseline, a = _resolved(social_security=None)
    with pytest.raises(InputValidationError):
        merge_overrides(baseline, {"ss_claiming_age": 70}, a)


def test_part_time_and_guardrails():
    baseline, a = _resolved()
    inputs, _, changes = merge_overrides(
        baseline, {"part_time_income": 20_000.0, "part_time_years": 5, "guardrails_enabled": True}, a
    )
    assert inputs.part_time_work.annual_income == 20_000.0
    assert inputs.part_time_work.years == 5
    assert inputs.guardrails.is_enabled
    assert inputs.guardrails.upper_guardrail_percent == pytest.approx(0.20)
    assert "Part-time income: $0 → $20,000" in changes
    assert "Part-time years: 0 → 5" in changes
    assert "Guardrails: off → on" in changes


def test_assumption_overrides():
    baseline, a = _resolved()
    _, merged, changes = merge_overrides(baseline, {"real_return": 0.04, "volatility": 0.15, "iterations": 50}, a)
    assert merged.real_return == pytest.approx(0.04)
    assert merged.volatility == pytest.approx(0.15)
    assert merged.iterations == 50
    assert changes == ["Real return: 5.0% → 4.0%", "Volatility: 12.0% → 15.0%"]


def test_bad_override_fields_rejected():
    baseline, a = _resolved()
    with pytest.raises(InputValidationError):
        merge_overrides(baseline, {"retirement_age": -1}, a)
    with pytest.raises(InputValidationError):
        merge_overrides(baseline, {"spending": 50_000.0}, a)


def test_merged_inputs_revalidated():
    baseline, a = _resolved()
    with pytest.raises(InputValidationError):
        merge_overrides(baseline, {"retirement_age": 97}, a)
    with pytest.raises(InputValidationError):
        merge_overrides(baseline, {"real_return": 0.5}, a)


def test_spending_cut_improves_success():
    res = run_what_if(_base_inputs(), {"annual_spending": 54_000.0}, {"iterations": 300}, seed=8)
    assert res.success_rate_delta >= 0
    assert res.success_rate_delta == pytest.approx(res.success_rate - res.baseline_success_rate)
    assert res.changes_from_baseline == ["Spending: $60,000 → $54,000"]
    assert not res.simulation.from_cache

    baseline = monte_carlo.run_simulation(_base_inputs(), {"iterations": 300}, seed=8)
    assert res.baseline_success_rate == baseline.success_rate


def test_empty_scenario_has_zero_delta():
    res = run_what_if(_base_inputs(), {}, {"iterations": 200}, seed=4)
    assert res.success_rate_delta == 0
    assert res.changes_from_baseline == []


def test_sensitivity_items_sorted_by_impact():
    report = run_sensitivity_analysis(_base_inputs(), {"iterations": 200}, iterations=200, seed=6)
    names = {it.variable for it in report.items}
    assert names == {"Annual spending", "Real return", "Volatility", "Planning horizon"}
    impacts = [it.impact for it in report.items]
    assert impacts == sorted(impacts, reverse=True)

    spending = next(it for it in report.items if it.variable == "Annual spending")
    assert spending.low_value == pytest.approx(48_000.0)
    assert spending.high_value == pytest.approx(72_000.0)
    assert spending.low_success_rate >= spending.high_success_rate

    horizon = next(it for it in report.items if it.variable == "Planning horizon")
    assert horizon.low_value == 90 and horizon.high_value == 100
