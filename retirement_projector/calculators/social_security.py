"""Simplified Social Security claiming-age adjustment.

The benefit entered for a profile is the monthly amount at its claiming age.
Moving the claiming age rescales it with the usual approximation:

* Full retirement age (FRA) defaults to 67.
* Claiming before FRA reduces the benefit by 7 % per year early.
* Claiming after FRA (up to 70) increases it by 8 % per year of delay.
* Claiming ages are clamped to [62, 70].

Example
-------

>>> # $2 000 per month at FRA, claimed two years early
>>> round(adjusted_monthly_benefit(2000, 65), 2)
1720.0
>>> # rebasing the same benefit from 65 to 70
>>> round(rebase_benefit(1720.0, 65, 70), 2)
2480.0
"""

from __future__ import annotations

EARLY_REDUCTION = 0.07
DELAYED_CREDIT = 0.08
MIN_CLAIMING_AGE = 62
MAX_CLAIMING_AGE = 70


def claiming_factor(claiming_age: int, fra: int = 67) -> float:
    """Multiplier applied to the FRA benefit when claiming at ``claiming_age``."""
    claiming_age = max(MIN_CLAIMING_AGE, min(MAX_CLAIMING_AGE, int(claiming_age)))
    years_diff = claiming_age - fra
    if years_diff < 0:
        return 1 + EARLY_REDUCTION * years_diff
    return 1 + DELAYED_CREDIT * years_diff


def adjusted_monthly_benefit(fra_benefit: float, claiming_age: int, fra: int = 67) -> float:
    """Monthly benefit at ``claiming_age`` for a benefit of ``fra_benefit`` at FRA."""
    return fra_benefit * claiming_factor(claiming_age, fra)


def rebase_benefit(monthly_benefit: float, from_age: int, to_age: int, fra: int = 67) -> float:
    """Convert a monthly benefit claimed at ``from_age`` to one claimed at ``to_age``.

    Parameters
    ----------
    monthly_benefit : float
        Benefit per month when claiming at ``from_age``.
    from_age, to_age : int
        Current and new claiming ages, clamped to [62, 70].
    fra : int, optional
        Full retirement age (default 67).

    Returns
    -------
    float
        Monthly benefit at ``to_age``.
    """
    base = claiming_factor(from_age, fra)
    if base <= 0:
        return 0.0
    return monthly_benefit / base * claiming_factor(to_age, fra)


def annual_benefit(monthly_benefit: float) -> float:
    return monthly_benefit * 12


__all__ = [
    "claiming_factor",
    "adjusted_monthly_benefit",
    "rebase_benefit",
    "annual_benefit",
]
