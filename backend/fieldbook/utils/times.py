"""
Clock-time helpers shared by search, pricing and reservations.

Times travel as "HH:MM" strings on the wire (URL params, form input) and as
datetime.time / datetime.datetime once inside the service layer.
"""
import re
from datetime import datetime, time, timedelta
from typing import List

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time. Raises ValueError on malformed input."""
    match = HHMM_PATTERN.match(value.strip()) if value else None
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def calc_end_time(start_time: str, duration_hours: float) -> str:
    """
    Add a duration in hours to an "HH:MM" start time.

    Same-day arithmetic only: there is no wrap past midnight, so
    calc_end_time("22:30", 1.5) returns "24:00" rather than "00:00".
    """
    hours, minutes = (int(part) for part in start_time.split(":"))
    total_minutes = hours * 60 + minutes + duration_hours * 60
    end_hour = int(total_minutes // 60)
    end_minute = int(total_minutes % 60)
    return f"{end_hour:02d}:{end_minute:02d}"


def intervals_overlap(a_start, a_end, b_start, b_end) -> bool:
    """Check if [a_start, a_end) overlaps [b_start, b_end)."""
    return a_start < b_end and a_end > b_start


def window_bounds(day, start_time: str, duration_hours: float):
    """
    Return the (start, end) datetimes of an availability window.

    The end is computed from minutes since midnight of ``day`` so a window
    running past midnight stays anchored to ``day`` (same-day semantics).
    """
    day_start = datetime.combine(day, time.min)
    start = day_start + timedelta(minutes=minutes_of_day(parse_hhmm(start_time)))
    end = start + timedelta(minutes=int(round(duration_hours * 60)))
    return start, end


def generate_time_slots(opening: time, closing: time, interval_minutes: int = 30) -> List[str]:
    """List "HH:MM" start times from opening (inclusive) to closing (exclusive)."""
    slots: List[str] = []
    current = minutes_of_day(opening)
    end = minutes_of_day(closing)
    while current < end:
        slots.append(f"{current // 60:02d}:{current % 60:02d}")
        current += interval_minutes
    return slots
