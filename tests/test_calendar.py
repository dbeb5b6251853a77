from datetime import date

from camptrack.services import calendar


def test_weekday_is_its_own_next_business_day() -> None:
    assert calendar.next_business_day(date(2026, 10, 14)) == date(2026, 10, 14)


def test_weekend_rolls_to_monday() -> None:
    assert calendar.next_business_day(date(2026, 10, 17)) == date(2026, 10, 19)


def test_holidays_are_skipped() -> None:
    holidays = {date(2026, 10, 29), date(2026, 10, 30)}
    assert calendar.next_business_day(date(2026, 10, 29), holidays) == date(2026, 11, 2)


def test_report_due_date_is_thirty_days_later() -> None:
    # 2026-09-30 + 30 days lands on Friday 2026-10-30.
    assert calendar.report_due_date(date(2026, 9, 30)) == date(2026, 10, 30)
    assert calendar.report_due_date(date(2026, 9, 30), {date(2026, 10, 30)}) == date(2026, 11, 2)
