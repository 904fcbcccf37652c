"""Wall-clock helpers shared by dynamic pricing and availability."""
import re
from datetime import date, datetime

_TIME_RE = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')


def is_valid_time(value) -> bool:
    """True for "H:MM"/"HH:MM" strings between 00:00 and 23:59."""
    return isinstance(value, str) and bool(_TIME_RE.match(value.strip()))


def to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    match = _TIME_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"Time must be in HH:MM format, got '{value}'")
    return int(match.group(1)) * 60 + int(match.group(2))


def from_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_of_week(value: date) -> int:
    """Day index with Sunday = 0 ... Saturday = 6."""
    return (value.weekday() + 1) % 7


def minute_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def intervals_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Half-open [start, end) overlap test."""
    return to_minutes(start1) < to_minutes(end2) and to_minutes(end1) > to_minutes(start2)
