"""Helpers for "HH:MM" wall-clock slots."""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from campus_hub.errors import ValidationError


def parse_time(value: str) -> time:
    """Parse an "HH:MM" string.

    Raises:
        ValidationError: If the value is not a valid 24h time
    """
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM") from e


def validate_range(start: str, end: str) -> tuple[time, time]:
    """Parse a start/end pair and require ``start < end``."""
    start_at, end_at = parse_time(start), parse_time(end)
    if start_at >= end_at:
        raise ValidationError(f"Start time {start} must be before end time {end}")
    return start_at, end_at


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open interval overlap: touching slots do not overlap."""
    return parse_time(a_start) < parse_time(b_end) and parse_time(b_start) < parse_time(a_end)


def contains(outer_start: str, outer_end: str, start: str, end: str) -> bool:
    return parse_time(outer_start) <= parse_time(start) and parse_time(end) <= parse_time(outer_end)


def to_utc(day: date, hhmm: str, tz: ZoneInfo) -> datetime:
    """Combine a campus-local date and time into an aware UTC datetime."""
    return datetime.combine(day, parse_time(hhmm), tzinfo=tz).astimezone(timezone.utc)
