"""Tests for the Social Security claiming-age adjustment."""

import math

from retirement_projector.calculators import social_security as ss


def test_early_claiming_reduction():
    """Claiming before FRA reduces benefits by 7% per year."""
    assert math.isclose(ss.adjusted_monthly_benefit(2000, 65), 2000 * 0.86, rel_tol=1e-9)


def test_delayed_claiming_credit():
    """Claiming after FRA increases benefits by 8% per year up to age 70."""
    assert math.isclose(ss.adjusted_monthly_benefit(2000, 70), 2000 * 1.24, rel_tol=1e-9)


def test_claiming_age_clamped():
    assert ss.claiming_factor(60) == ss.claiming_factor(62)
    assert ss.claiming_factor(75) == ss.claiming_factor(70)
    assert math.isclose(ss.claiming_factor(62), 0.65, rel_tol=1e-9)


def test_custom_full_retirement_age():
    assert math.isclose(ss.claiming_factor(66, fra=66), 1.0)
    assert math.isclose(ss.claiming_factor(67, fra=66), 1.08)


def test_rebase_round_trip():
    at_65 = ss.adjusted_monthly_benefit(2000, 65)
    at_70 = ss.rebase_benefit(at_65, 65, 70)
    assert math.isclose(at_70, 2480.0, rel_tol=1e-9)
    assert math.isclose(ss.rebase_benefit(at_70, 70, 65), at_65, rel_tol=1e-9)


def test_annual_benefit():
    assert ss.annual_benefit(1500) == 18000
