"""Minute-offset, duration and date-key formatting."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def format_duration(minutes: int) -> str:
    """Format minutes as "2hr 30min", "2hr" or "45min"."""

    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}min"
    if mins == 0:
        return f"{hours}hr"
    return f"{hours}hr {mins}min"


def minutes_to_time(total_minutes: int) -> str:
    """Format a minute offset as a 12-hour clock label, e.g. "2:30 PM"."""

    hours24 = (int(total_minutes) // 60) % 24
    minutes = int(total_minutes) % 60
    period = "PM" if hours24 >= 12 else "AM"
    hours12 = hours24 % 12 or 12
    return f"{hours12}:{minutes:02d} {period}"


def minutes_to_clock(total_minutes: int) -> str:
    """Format a minute offset as 24-hour "HH:MM"; the end of day is "24:00"."""

    hours, minutes = divmod(int(total_minutes), 60)
    return f"{hours:02d}:{minutes:02d}"


def clock_to_minutes(value: str) -> int:
    """Parse "HH:MM" (00:00 through 24:00) into a minute offset."""

    match = _CLOCK_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"malformed clock time '{value}'")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes >= 60 or hours > 24 or (hours == 24 and minutes):
        raise ValueError(f"clock time out of range '{value}'")
    return hours * 60 + minutes


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def parse_date(date_key: str) -> date:
    """Parse a YYYY-MM-DD date key."""

    try:
        return date.fromisoformat(date_key)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid date key '{date_key}'") from exc


def today_string(now: datetime | None = None) -> str:
    return format_date((now or datetime.now()).date())


def is_today(date_key: str, now: datetime | None = None) -> bool:
    return date_key == today_string(now)


def previous_day(date_key: str) -> str:
    return format_date(parse_date(date_key) - timedelta(days=1))


def next_day(date_key: str) -> str:
    return format_date(parse_date(date_key) + timedelta(days=1))


def format_date_display(date_key: str) -> str:
    """e.g. "January 29, 2026"."""

    value = parse_date(date_key)
    return f"{value:%B} {value.day}, {value.year}"


def format_date_short(date_key: str) -> str:
    """e.g. "Jan 29"."""

    value = parse_date(date_key)
    return f"{value:%b} {value.day}"
