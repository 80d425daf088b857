"""
General helper utilities
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings


def utcnow() -> datetime:
    """
    Current time as an aware UTC datetime
    """
    return datetime.now(timezone.utc)


def blank_to_none(value: Any) -> Any:
    """
    Treat empty or whitespace-only strings as absent (cleared filter inputs)
    """
    if isinstance(value, str) and not value.strip():
        return None
    return value


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC

    Naive values are taken to already be UTC (SQLite returns stored
    timestamps without tzinfo).

    Args:
        dt: Datetime object or None

    Returns:
        Aware UTC datetime, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_midnight(days_ago: int = 0, now: Optional[datetime] = None) -> datetime:
    """
    Midnight in the operating timezone, `days_ago` days before today

    Args:
        days_ago: Number of days to step back from today
        now: Reference time (defaults to current time)

    Returns:
        Aware UTC datetime of that midnight
    """
    tz = ZoneInfo(settings.TIMEZONE)
    current = (ensure_utc(now) or utcnow()).astimezone(tz)
    day = current.date() - timedelta(days=days_ago)
    midnight = datetime(day.year, day.month, day.day, tzinfo=tz)
    return midnight.astimezone(timezone.utc)


def elapsed_ms(started: float, finished: float) -> int:
    """
    Milliseconds between two perf_counter() readings
    """
    return int(round((finished - started) * 1000))


def json_safe(data: Any) -> Any:
    """
    Make an arbitrary payload storable in a JSON column

    Datetimes become ISO strings, enums their values, anything else
    unknown its string form.

    Args:
        data: Value to convert

    Returns:
        JSON-compatible value
    """
    if data is None or isinstance(data, (bool, int, float, str)):
        return data
    if isinstance(data, datetime):
        return ensure_utc(data).isoformat()
    if hasattr(data, "value") and isinstance(getattr(data, "value"), str):
        return data.value
    if isinstance(data, dict):
        return {str(key): json_safe(value) for key, value in data.items()}
    if isinstance(data, (list, tuple, set)):
        return [json_safe(item) for item in data]
    return str(data)


def dedupe(values: Optional[list]) -> list:
    """
    Remove duplicates from a list, keeping first-seen order
    """
    seen: Dict[Any, None] = {}
    for value in values or []:
        seen.setdefault(value, None)
    return list(seen)
