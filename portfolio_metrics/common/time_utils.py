from __future__ import annotations

from datetime import date, datetime, time, timezone


def parse_iso8601(dt_str: str) -> datetime:
    # Schedulers send e.g. 2025-01-01T06:00:00Z
    if dt_str.endswith("Z"):
        dt_str = dt_str[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(dt_str))


def to_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are read as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_calendar_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return to_utc(value).date()
    return value


def at_utc_hour(day: date, hour: int) -> datetime:
    return datetime.combine(day, time(hour=hour), tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)
