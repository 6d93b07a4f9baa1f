# salon_scheduler/core.py

from datetime import datetime, timedelta, timezone


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # half-open: [9:00, 9:30) and [9:30, 10:00) do not overlap
    return a_start < b_end and b_start < a_end


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def duration_of(start: datetime, end: datetime) -> timedelta:
    return end - start


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
