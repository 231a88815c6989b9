"""Tests for assumption defaults and input resolution."""

from datetime import date, timedelta

import pytest

from retirement_projector.calculators import assumptions as asm
from retirement_projector.errors import InputValidationError


def _base_inputs() -> dict:
    return {
        "current_net_worth": 1_000_000.0,
        "annual_spending": 40_000.0,
        "current_age": 60,
        "retirement_age": 65,
    }


def test_defaults_loaded_from_package_file():
    a = asm.resolve_assumptions()
    assert a.real_return == pytest.approx(0.05)
    assert a.optimistic_return == pytest.approx(0.07)
    assert a.pessimistic_return == pytest.approx(0.03)
    assert a.volatility == pytest.approx(0.12)
    assert a.target_success_rate == pytest.approx(0.90)
    assert a.iterations == 1000
    assert a.life_expectancy == 95


def test_none_overrides_keep_defaults():
    a = asm.resolve_assumptions({"real_return": 0.04, "volatility": None})
    assert a.real_return == pytest.approx(0.04)
    assert a.volatility == pytest.approx(0.12)


def test_out_of_range_assumption_rejected():
    with pytest.raises(InputValidationError):
        asm.resolve_assumptions({"volatility": 0.8})
    with pytest.raises(InputValidationError):
        asm.resolve_assumptions({"life_expectancy": 60})


def test_guardrail_defaults():
    cfg = asm.guardrails_with_defaults({"is_enabled": True})
    assert cfg.is_enabled
    assert cfg.upper_guardrail_percent == pytest.approx(0.20)
    assert cfg.lower_guardrail_percent == pytest.approx(0.20)
    assert cfg.adjustment_percent == pytest.approx(0.10)
    assert cfg.strategy_type == "percentage"


def test_cache_ttl_default():
    assert asm.cache_ttl_hours() == 24


def test_retirement_age_from_date_rounds_half_up():
    today = date(2025, 1, 1)
    assert asm.retirement_age_from_date(60, date(2030, 1, 1), today=today) == 65
    # 4.5 years and a bit rounds up
    assert asm.retirement_age_from_date(60, today + timedelta(days=1644), today=today) == 65
    # just under 4.5 years rounds down
    assert asm.retirement_age_from_date(60, today + timedelta(days=1640), today=today) == 64


def test_retirement_date_in_past_means_retired_now():
    today = date(2025, 1, 1)
    assert asm.retirement_age_from_date(60, date(2020, 6, 1), today=today) == 60


def test_plan_to_age_filled_from_life_expectancy():
    resolved = asm.resolve_inputs(_base_inputs(), asm.resolve_assumptions({"life_expectancy": 90}))
    assert resolved.plan_to_age == 90


def test_retirement_after_life_expectancy_rejected():
    inputs = dict(_base_inputs(), retirement_age=100)
    with pytest.raises(InputValidationError):
        asm.resolve_inputs(inputs, asm.resolve_assumptions())


def test_age_ordering_enforced():
    with pytest.raises(InputValidationError):
        asm.coerce_inputs(dict(_base_inputs(), retirement_age=55))
    with pytest.raises(InputValidationError):
        asm.coerce_inputs(dict(_base_inputs(), plan_to_age=62))


def test_missing_fields_listed():
    inputs = _base_inputs()
    del inputs["current_age"]
    with pytest.raises(InputValidationError) as info:
        asm.coerce_inputs(inputs)
    assert "current_age" in info.value.missing_inputs


def test_unknown_field_rejected():
    with pytest.raises(InputValidationError):
        asm.coerce_inputs(dict(_base_inputs(), salary=100_000))


def test_require_ready_reports_profile_gaps():
    inputs = asm.coerce_inputs(dict(_base_inputs(), current_net_worth=0.0, annual_spending=0.0))
    with pytest.raises(InputValidationError) as info:
        asm.require_ready(inputs)
    assert info.value.missing_inputs == ["portfolio value", "annual spending"]
    # the solver does not need spending
    with pytest.raises(InputValidationError) as info:
        asm.require_ready(inputs, need_spending=False)
    assert info.value.missing_inputs == ["portfolio value"]
