"""Time utilities for timezone-aware UTC datetimes."""

from datetime import UTC, date, datetime, time


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime for defaults and onupdate hooks."""
    return datetime.now(UTC)


def utc_today() -> date:
    return utc_now().date()


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from databases that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def minutes_between(start: time, end: time) -> int:
    """Whole minutes from start to end on the same day."""
    start_minutes = start.hour * 60 + start.minute
    end_minutes = end.hour * 60 + end.minute
    return end_minutes - start_minutes


def sunday_based_weekday(value: date) -> int:
    """Weekday with 0 = Sunday … 6 = Saturday, the convention availability rows use."""
    return (value.weekday() + 1) % 7
