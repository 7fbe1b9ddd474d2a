from __future__ import annotations

from datetime import time

from app.errors import ValidationError


def parse_hhmm(value: str | time | None) -> time | None:
    if value is None:
        return None
    if isinstance(value, time):
        return value
    raw = value.strip()
    if not raw:
        return None
    parts = raw.split(":")
    if len(parts) not in (2, 3):
        raise ValidationError(f"Invalid time format: {value!r}, expected HH:MM")
    try:
        hour = int(parts[0])
        minute = int(parts[1])
        second = int(parts[2]) if len(parts) == 3 else 0
    except ValueError as exc:
        raise ValidationError(f"Invalid time format: {value!r}, expected HH:MM") from exc
    if not (0 <= hour <= 23 and 0 <= minute <= 59 and 0 <= second <= 59):
        raise ValidationError(f"Invalid time format: {value!r}, expected HH:MM")
    return time(hour=hour, minute=minute, second=second)


def format_hhmm(value: time | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%H:%M")


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_between(start: time, end: time) -> int:
    return to_minutes(end) - to_minutes(start)


def ensure_window(start: time | None, end: time | None, *, label: str = "Schedule") -> None:
    if start is None or end is None:
        raise ValidationError(f"{label} start and end times are required")
    if start >= end:
        raise ValidationError(f"{label} start time must be before end time")
