"""
Time helpers.
All stored timestamps are naive UTC datetimes.
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the database columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Union[str, datetime]) -> datetime:
    """Parse an ISO string or normalise an aware datetime to naive UTC"""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def start_of_day(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        value = to_naive_utc(value).date()
    return datetime.combine(value, time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        value = to_naive_utc(value).date()
    return datetime.combine(value, time.max)


_UNITS = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def time_ago(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Human readable distance between moment and now, e.g. "5 minutes ago".

    Args:
        moment: the past (or future) timestamp
        now: reference time, defaults to utcnow()

    Returns:
        Relative description, or "N/A" when moment is missing
    """
    if moment is None:
        return "N/A"
    now = now or utcnow()
    seconds = int((to_naive_utc(now) - to_naive_utc(moment)).total_seconds())
    suffix = "ago" if seconds >= 0 else "from now"
    seconds = abs(seconds)
    if seconds < 1:
        return "just now"

    for unit, size in _UNITS:
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'' if count == 1 else 's'} {suffix}"
    return "just now"


def to_epoch(value: Union[str, datetime]) -> float:
    """Seconds since the epoch for a naive UTC (or aware) datetime"""
    return to_naive_utc(value).replace(tzinfo=timezone.utc).timestamp()
