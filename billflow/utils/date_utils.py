"""Date manipulation utilities"""

from datetime import date, datetime, timezone
from dateutil.relativedelta import relativedelta


def today_utc() -> date:
    """Calendar date in UTC; the single anchor for "today" across the service"""
    return datetime.now(timezone.utc).date()


def to_calendar_date(value: date | datetime | str) -> date:
    """Drop any time-of-day component, normalizing aware datetimes to UTC first"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    # Accept full ISO timestamps as well as YYYY-MM-DD
    if "T" in value or " " in value.strip():
        return to_calendar_date(datetime.fromisoformat(value.replace("Z", "+00:00")))
    return date.fromisoformat(value)


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping to the last day of a shorter target month"""
    return from_date + relativedelta(months=months)


def add_years(from_date: date, years: int) -> date:
    """Add calendar years (Feb 29 clamps to Feb 28 in non-leap years)"""
    return from_date + relativedelta(years=years)
