# fintrack_client/periods.py
"""
Budget allocations are stored in monthly terms ("canonical") and shown in the
period the user picks. A month is treated as exactly four weeks, so the weekly
factors are 0.25 and 4 rather than the calendar 12/52 and 52/12.
"""

from enum import Enum

WEEKS_PER_MONTH = 4
MONTHS_PER_YEAR = 12


class Period(Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        for period in cls:
            if str(value).strip().lower() == period.value.lower():
                return period
        raise ValueError(f"Unknown period: {value!r}")


def period_multiplier(period) -> float:
    period = Period.parse(period)
    if period is Period.WEEKLY:
        return 1 / WEEKS_PER_MONTH
    if period is Period.YEARLY:
        return MONTHS_PER_YEAR
    return 1


def to_display(monthly_amount: float, period) -> float:
    """Canonical monthly amount -> amount for the chosen period."""
    period = Period.parse(period)
    if period is Period.WEEKLY:
        return monthly_amount * 0.25
    if period is Period.YEARLY:
        return monthly_amount * MONTHS_PER_YEAR
    return monthly_amount


def to_canonical(display_amount: float, period) -> float:
    """Amount typed in the chosen period -> canonical monthly amount."""
    period = Period.parse(period)
    if period is Period.WEEKLY:
        return display_amount * WEEKS_PER_MONTH
    if period is Period.YEARLY:
        return display_amount / MONTHS_PER_YEAR
    return display_amount
