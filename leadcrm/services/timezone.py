"""
Organisation-local time handling for lead callbacks.

The organisation runs on a fixed UTC+3 offset. Daylight saving is deliberately
ignored: 21:03 local is always 18:03 UTC. Dates and times are split by hand so
the host timezone and locale never take part in parsing.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union

from leadcrm.core.config import settings

DateLike = Union[str, date, None]
TimeLike = Union[str, time, None]


def parse_date(value: DateLike) -> Optional[date]:
    """'YYYY-MM-DD' (or a date) -> date. Empty values give None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    parts = str(value).strip()[:10].split("-")
    if len(parts) != 3:
        raise ValueError(f"Invalid date: {value!r}")
    year, month, day = (int(p) for p in parts)
    return date(year, month, day)


def parse_time(value: TimeLike) -> Optional[time]:
    """'HH:MM' (seconds tolerated) or a time -> time. Empty values give None."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    parts = str(value).strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None


def format_time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


def org_local_to_utc(date_value: DateLike, time_value: TimeLike) -> datetime:
    """Convert an organisation wall-clock date/time into a naive UTC datetime."""
    d = parse_date(date_value)
    t = parse_time(time_value)
    if d is None or t is None:
        raise ValueError("Both date and time are required")

    local = datetime(d.year, d.month, d.day, t.hour, t.minute)
    return local - timedelta(hours=settings.ORG_UTC_OFFSET_HOURS)


def callback_window(date_value: DateLike, time_value: TimeLike) -> Tuple[datetime, datetime]:
    start = org_local_to_utc(date_value, time_value)
    return start, start + timedelta(minutes=settings.CALLBACK_DURATION_MINUTES)


def format_utc(value: Optional[datetime]) -> Optional[str]:
    """Naive UTC datetime -> 'YYYY-MM-DDTHH:MM:SS.000Z'."""
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%S") + ".000Z"


def parse_instant(value: Union[str, datetime]) -> datetime:
    """ISO-8601 string or datetime -> naive UTC. Naive inputs are taken as UTC."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is not None:
        value = value - value.utcoffset()
        value = value.replace(tzinfo=None)
    return value
