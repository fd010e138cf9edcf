"""Recurring schedule arithmetic for bill series"""

from datetime import date, timedelta
from typing import Optional
from billflow.domain.models import Frequency
from billflow.utils.date_utils import add_months, add_years


def next_due_date(current: date, frequency: Frequency | str) -> Optional[date]:
    """
    Compute the due date of the next occurrence in a series.

    Rules:
    - weekly: +7 calendar days
    - monthly: +1 calendar month
    - quarterly: +3 calendar months
    - yearly: +1 calendar year
    - none, or any unrecognized value: no further occurrences (returns None)

    Month arithmetic clamps to the last day of the target month rather than
    overflowing into the following one.

    Example:
        2024-01-31 monthly → 2024-02-29
        2024-02-29 yearly  → 2025-02-28
    """
    frequency = Frequency.coerce(frequency)

    if frequency is Frequency.WEEKLY:
        return current + timedelta(days=7)
    elif frequency is Frequency.MONTHLY:
        return add_months(current, 1)
    elif frequency is Frequency.QUARTERLY:
        return add_months(current, 3)
    elif frequency is Frequency.YEARLY:
        return add_years(current, 1)
    else:
        return None


def should_spawn_next(next_due: Optional[date], end_date: Optional[date]) -> bool:
    """Whether the next occurrence falls inside the series (end date is inclusive)"""
    if next_due is None:
        return False
    if end_date is None:
        return True
    return next_due <= end_date
