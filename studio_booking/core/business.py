# studio_booking/core/business.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

UTC = timezone.utc

# Hour-aligned consultation starts offered per time-of-day preference
PERIOD_SLOTS: dict[str, tuple[time, ...]] = {
    "morning": (time(9, 0), time(10, 0), time(11, 0)),
    "afternoon": (time(14, 0), time(15, 0), time(16, 0)),
    "evening": (time(18, 0), time(19, 0), time(20, 0)),
}

SUGGESTED_SLOT_MINUTES = 60

_WEEKDAYS_FR = ("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche")
_MONTHS_FR = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)


def period_of(t: time) -> str:
    if t.hour < 12:
        return "morning"
    if t.hour < 18:
        return "afternoon"
    return "evening"


def parse_local_date(value: str) -> date:
    """Parse YYYY-MM-DD (a trailing time part, as sent by some clients, is ignored)."""
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")


def parse_local_time(value: str) -> time:
    try:
        parsed = time.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return parsed.replace(second=0, microsecond=0)


def local_to_utc(day: date, at: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, at, tzinfo=tz).astimezone(UTC)


def ensure_utc(dt: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Naive datetimes are read in `tz` (UTC when not given)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or UTC)
    return dt.astimezone(UTC)


def day_bounds_utc(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = local_to_utc(day, time(0, 0), tz)
    return start, start + timedelta(days=1)


def format_date_fr(dt: datetime | date) -> str:
    """'lundi 10 mars 2025'"""
    return f"{_WEEKDAYS_FR[dt.weekday()]} {dt.day} {_MONTHS_FR[dt.month - 1]} {dt.year}"


def slot_label(start: time, end: time) -> str:
    """'9h00 - 10h00'"""
    return f"{start.hour}h{start.minute:02d} - {end.hour}h{end.minute:02d}"
