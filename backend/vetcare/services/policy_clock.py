"""
Pure time-window arithmetic used by every appointment policy.

All arithmetic happens on timezone-aware UTC datetimes; naive values are
taken to already be UTC (that is how MongoDB hands them back).
"""
from datetime import date, datetime, time, timedelta, timezone

MS_PER_HOUR = 3_600_000
_ONE_MS = timedelta(milliseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_until(event_time: datetime, now: datetime) -> int:
    """Whole hours from ``now`` to ``event_time``.

    Floor division of the millisecond delta, so the result is negative as soon
    as ``event_time`` is in the past.
    """
    delta_ms = (as_utc(event_time) - as_utc(now)) // _ONE_MS
    return delta_ms // MS_PER_HOUR


def is_at_least(event_time: datetime, now: datetime, threshold_hours: int) -> bool:
    return hours_until(event_time, now) >= threshold_hours


def day_window(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a calendar day in UTC."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def format_for_display(value: datetime, fmt: str) -> str:
    return as_utc(value).strftime(fmt)
