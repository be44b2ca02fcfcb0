"""
Date helpers: event start parsing and human-readable relative times.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

_UNITS = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: str, tz: str = "UTC") -> datetime:
    """
    Parse an ISO 8601 date or datetime. Naive values are taken to be in `tz`;
    a bare date means midnight. Raises ValueError.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        dt = datetime.combine(date.fromisoformat(value), datetime.min.time())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(tz))
    return dt


def parse_event_start(event: dict, tz: str = "UTC") -> datetime | None:
    """Start of a Google Calendar event (timed or all-day), or None."""
    start = event.get("start") or {}
    raw = start.get("dateTime") or start.get("date")
    if not raw:
        return None
    try:
        return parse_datetime(raw, start.get("timeZone") or tz)
    except ValueError:
        return None


def humanize(moment: datetime, now: datetime | None = None) -> str:
    """'in 2 hours', '3 days ago', 'just now'."""
    now = now or utc_now()
    delta = int((moment - now).total_seconds())
    seconds = abs(delta)
    if seconds < 1:
        return "just now"
    for name, size in _UNITS:
        if seconds >= size:
            count = seconds // size
            label = f"{count} {name}{'s' if count != 1 else ''}"
            return f"in {label}" if delta > 0 else f"{label} ago"
    return "just now"
