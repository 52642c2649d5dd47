from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .validation import ValidationError

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_iso() -> str:
    return date.today().isoformat()


def parse_day(value: str | date) -> date:
    """
    Parse a calendar-day string ("YYYY-MM-DD").

    Raises ValidationError for anything else, including datetimes with a
    time component.
    """
    if isinstance(value, datetime):
        raise ValidationError("for_date must be a calendar day, not a datetime")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError("for_date must be a YYYY-MM-DD string")
    s = value.strip()
    try:
        parsed = date.fromisoformat(s)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")
    if len(s) != 10:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")
    return parsed


def normalize_day(value: str | date) -> str:
    return parse_day(value).isoformat()


def previous_day(value: str | date) -> str:
    # Plain calendar arithmetic: weekends and holidays carry like any other day
    return (parse_day(value) - timedelta(days=1)).isoformat()


def day_of_week(value: str | date) -> str:
    return DAY_NAMES[parse_day(value).weekday()]


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
