from __future__ import annotations

from collections.abc import Collection
from datetime import date, timedelta

REPORT_LEAD_DAYS = 30


def is_business_day(day: date, holidays: Collection[date] = ()) -> bool:
    return day.weekday() < 5 and day not in holidays


def next_business_day(day: date, holidays: Collection[date] = ()) -> date:
    """Return ``day`` itself when it is a working day, else the next one."""
    result = day
    while not is_business_day(result, holidays):
        result += timedelta(days=1)
    return result


def report_due_date(day: date, holidays: Collection[date] = ()) -> date:
    return next_business_day(day + timedelta(days=REPORT_LEAD_DAYS), holidays)
