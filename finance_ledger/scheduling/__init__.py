"""Recurring schedule package."""

from finance_ledger.scheduling.recurrence import (
    RecurringInterval,
    add_months,
    next_occurrence,
)

__all__ = ["RecurringInterval", "add_months", "next_occurrence"]
