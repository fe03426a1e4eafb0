"""Time and timezone utilities."""

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

# "05:40", "5:40", "05:40 (+08)", "05:40 (SGT)"
_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?:\s*\(.*\))?\s*$")


def parse_hhmm(value: str) -> time:
    """Parse an HH:MM wall-clock string.

    Trailing timezone annotations such as " (+08)" are ignored.

    Raises:
        ValueError: if the string is not a valid 24-hour time
    """
    match = _HHMM_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time string: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    return time(hour, minute)


def format_hhmm(value: time) -> str:
    """Format a time as HH:MM."""
    return f"{value.hour:02d}:{value.minute:02d}"


def to_local(dt: datetime, tz: str) -> datetime:
    """Convert a datetime to the given timezone.

    Naive datetimes are assumed to already be wall-clock time in `tz`.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(tz))
    return dt.astimezone(ZoneInfo(tz))


def local_now(tz: str) -> datetime:
    """Current time in the given timezone."""
    return datetime.now(ZoneInfo(tz))


def at_local(day: date, wall_time: time, tz: str) -> datetime:
    """Build an aware datetime for a wall-clock time on a given day."""
    return datetime.combine(day, wall_time, tzinfo=ZoneInfo(tz))


def seconds_since_midnight(dt: datetime | time) -> int:
    """Day-relative offset in whole seconds."""
    return dt.hour * 3600 + dt.minute * 60 + dt.second


def next_month(year: int, month: int) -> tuple[int, int]:
    """The (year, month) following the given one."""
    following = date(year, month, 1) + relativedelta(months=1)
    return following.year, following.month


def format_time_until(delta: timedelta) -> str:
    """Format a countdown the way the prayer screen shows it.

    Examples:
        2h20m -> "2 hr 20 min"
        45m -> "0 hr 45 min"
    """
    total_minutes = max(int(delta.total_seconds() // 60), 0)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours} hr {minutes} min"


def format_duration(minutes: int) -> str:
    """Format minutes into a human-readable duration.

    Examples:
        0 -> "off"
        15 -> "15 minutes"
        60 -> "1 hour"
        90 -> "1.5 hours"
    """
    if minutes <= 0:
        return "off"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"

    hours = minutes / 60
    if hours == int(hours):
        return f"{int(hours)} hour{'s' if hours != 1 else ''}"
    return f"{hours:.1f} hours"
