"""
Recurring Schedule Calculator

Pure date arithmetic for recurring transactions. No I/O, no clock.

Month and year steps keep the day of month where the target month
has it, otherwise they clamp to the target month's last day:
    2024-01-31 + MONTHLY -> 2024-02-29
    2023-01-31 + MONTHLY -> 2023-02-28
    2024-02-29 + YEARLY  -> 2025-02-28
"""

import calendar
from datetime import date, timedelta
from enum import Enum
from typing import TypeVar, Union


D = TypeVar("D", bound=date)


class RecurringInterval(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)


def add_months(d: D, n: int) -> D:
    """Add n months to d, clamping the day to the target month's end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, d.day)
    return d.replace(year=year, month=month, day=day)


def next_occurrence(
    start: D,
    interval: Union[RecurringInterval, str],
) -> D:
    """
    Compute the next occurrence one interval step after start.

    Accepts date or datetime; a datetime keeps its time of day.

    Raises:
        ValueError: If interval is not a known RecurringInterval
    """
    # Unknown values must not fall through unchanged
    interval = RecurringInterval(interval)

    if interval is RecurringInterval.DAILY:
        return start + timedelta(days=1)
    if interval is RecurringInterval.WEEKLY:
        return start + timedelta(days=7)
    if interval is RecurringInterval.MONTHLY:
        return add_months(start, 1)
    return add_months(start, 12)
