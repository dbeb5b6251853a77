from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, date, datetime, time

TIME_OF_DAY_RE = re.compile(r"^(?P<hour>[01]\d|2[0-3]):(?P<minute>[0-5]\d)$")
MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class ValidationError(ValueError):
    pass


def require(value: object | None, field: str) -> None:
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{field} is required.")


def validate_enum(value: str | None, allowed: Iterable[str], field: str) -> None:
    if value is None:
        return
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")


def parse_date(value: str | None, field: str) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be YYYY-MM-DD.") from exc


def parse_datetime(value: str | None, field: str) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be ISO 8601.") from exc
    return as_utc(parsed)


def parse_time_of_day(value: str | None, field: str) -> time:
    match = TIME_OF_DAY_RE.match(value or "")
    if not match:
        raise ValidationError(f"{field} must be HH:MM.")
    return time(int(match.group("hour")), int(match.group("minute")))


def parse_month(value: str | None, field: str) -> str:
    if value is None or not MONTH_RE.match(value):
        raise ValidationError(f"{field} must be YYYY-MM.")
    return value


def as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC already.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_utc(value: datetime) -> str:
    return as_utc(value).replace(microsecond=0).isoformat()
