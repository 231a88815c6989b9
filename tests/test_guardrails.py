"""Tests for the guardrails withdrawal policy."""

import pytest

from retirement_projector.calculators import monte_carlo, projection
from retirement_projector.calculators.assumptions import resolve_assumptions
from retirement_projector.calculators.guardrails import GuardrailPolicy, project_with_guardrails
from retirement_projector.models import GuardrailsConfig


def _base_inputs(**overrides) -> dict:
    inputs = {
        "current_net_worth": 1_000_000.0,
        "annual_spending": 50_000.0,
        "current_age": 65,
        "retirement_age": 65,
        "plan_to_age": 95,
        "start_year": 2025,
    }
    inputs.update(overrides)
    return inputs


def _guardrails(**overrides) -> dict:
    cfg = {"is_enabled": True}
    cfg.update(overrides)
    return cfg


def test_policy_evaluate_bands():
    policy = GuardrailPolicy(GuardrailsConfig(is_enabled=True))
    assert policy.evaluate(0.061, 0.05) == "cut"
    assert policy.evaluate(0.039, 0.05) == "raise"
    assert policy.evaluate(0.055, 0.05) is None
    assert policy.evaluate(0.045, 0.05) is None
    assert policy.evaluate(0.5, 0.0) is None


def test_policy_percentage_adjustments():
    policy = GuardrailPolicy(GuardrailsConfig(is_enabled=True))
    assert policy.adjust(50_000.0, "cut") == pytest.approx(45_000.0)
    assert policy.adjust(50_000.0, "raise") == pytest.approx(55_000.0)
    assert policy.adjust(50_000.0, None) == 50_000.0


def test_policy_respects_floor_and_ceiling():
    policy = GuardrailPolicy(GuardrailsConfig(
        is_enabled=True, spending_floor=47_000.0, spending_ceiling=52_000.0,
    ))
    assert policy.adjust(50_000.0, "cut") == pytest.approx(47_000.0)
    assert policy.adjust(50_000.0, "raise") == pytest.approx(52_000.0)


def test_policy_fixed_amount_never_negative():
    policy = GuardrailPolicy(GuardrailsConfig(
        is_enabled=True, strategy_type="fixed", fixed_adjustment_amount=2_000.0,
    ))
    assert policy.adjust(50_000.0, "cut") == pytest.approx(48_000.0)
    assert policy.adjust(50_000.0, "raise") == pytest.approx(52_000.0)
    assert policy.adjust(1_500.0, "cut") == 0.0


def test_ceiling_below_floor_rejected():
    with pytest.raises(ValueError):
        GuardrailsConfig(spending_floor=50_000.0, spending_ceiling=40_000.0)


def test_disabled_matches_deterministic_projection():
    inputs = _base_inputs()
    a = resolve_assumptions()
    guarded = project_with_guardrails(inputs, a)
    plain = projection.project(inputs, a)
    assert not guarded.is_enabled
    assert [y.end_balance for y in guarded.years] == [y.end_balance for y in plain.years]
    s = guarded.summary
    assert s.min_spending == s.max_spending == 50_000.0
    assert s.cut_count == s.raise_count == 0


def test_poor_returns_trigger_cuts():
    inputs = _base_inputs(guardrails=_guardrails())
    res = project_with_guardrails(inputs, resolve_assumptions({"real_return": 0.0}))
    s = res.summary
    assert s.cut_count > 0
    assert s.min_spending < 50_000.0
    assert s.spending_range == pytest.approx(s.max_spending - s.min_spending)
    assert any(y.guardrail_triggered == "cut" for y in res.years)
    # no adjustment in the baseline year
    assert res.years[0].guardrail_triggered is None


def test_cuts_stop_at_floor():
    inputs = _base_inputs(guardrails=_guardrails(spending_floor=45_000.0))
    res = project_with_guardrails(inputs, resolve_assumptions({"real_return": 0.0}))
    assert res.summary.min_spending >= 45_000.0
    assert all(y.spending >= 45_000.0 for y in res.years if y.start_balance > 0)


def test_strong_returns_trigger_raises_capped_at_ceiling():
    inputs = _base_inputs(annual_spending=40_000.0, guardrails=_guardrails(spending_ceiling=44_000.0))
    res = project_with_guardrails(inputs, resolve_assumptions({"real_return": 0.10}))
    s = res.summary
    assert s.raise_count > 0
    assert s.max_spending == pytest.approx(44_000.0)
    assert s.funds_last_to_plan_age
    assert s.portfolio_lasts_to_age == 95


def test_config_argument_overrides_inputs():
    res = project_with_guardrails(_base_inputs(), resolve_assumptions({"real_return": 0.0}),
                                  config={"is_enabled": True})
    assert res.is_enabled
    assert res.summary.cut_count > 0


def test_guardrails_never_lower_monte_carlo_success():
    """With spending capped at its starting level, guardrails can only help."""
    a = resolve_assumptions({"volatility": 0.15})
    plain = _base_inputs(annual_spending=55_000.0)
    guarded = _base_inputs(annual_spending=55_000.0, guardrails=_guardrails(spending_ceiling=55_000.0))
    without = monte_carlo.run_simulation(plain, a, iterations=400, seed=21)
    with_gr = monte_carlo.run_simulation(guarded, a, iterations=400, seed=21)
    assert with_gr.success_rate >= without.success_rate
    assert with_gr.risk.percent_cut_paths > 0
    assert without.risk.percent_cut_paths == 0
