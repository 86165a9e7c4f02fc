"""
Slot Generation

Turns a salon's weekly working hours, a service duration and the day's active
booking intervals into the start times a client can pick.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from salonbook.scheduling.conflicts import Interval, conflicts

SLOT_GRANULARITY_MINUTES = 30

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DEFAULT_DAY_HOURS = {"open": "09:00", "close": "18:00"}

# Hours given to a newly registered salon
DEFAULT_WORKING_HOURS = {
    "monday": {"open": "09:00", "close": "18:00"},
    "tuesday": {"open": "09:00", "close": "18:00"},
    "wednesday": {"open": "09:00", "close": "18:00"},
    "thursday": {"open": "09:00", "close": "18:00"},
    "friday": {"open": "09:00", "close": "18:00"},
    "saturday": {"open": "09:00", "close": "18:00"},
    "sunday": {"open": "10:00", "close": "16:00"},
}


def parse_clock(value: str) -> time:
    """Parse a 24h "HH:MM" wall-clock label."""
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def _day_bounds(
    working_hours: Optional[Mapping[str, Any]],
    weekday: str,
    day: date,
    default: Mapping[str, str] = DEFAULT_DAY_HOURS,
) -> Tuple[datetime, datetime]:
    day_hours = (working_hours or {}).get(weekday) or default
    open_at = datetime.combine(day, parse_clock(day_hours["open"]))
    close_at = datetime.combine(day, parse_clock(day_hours["close"]))
    return open_at, close_at


def resolve_day_hours(
    working_hours: Optional[Mapping[str, Any]],
    day: date,
    default: Mapping[str, str] = DEFAULT_DAY_HOURS,
) -> Tuple[datetime, datetime]:
    """
    Opening and closing instants of ``day``.

    A weekday missing from ``working_hours`` falls back to ``default``.
    """
    return _day_bounds(working_hours, weekday_name(day), day, default)


def fits_working_hours(
    working_hours: Optional[Mapping[str, Any]], candidate: Interval
) -> bool:
    """True if the candidate lies entirely inside its day's business hours."""
    open_at, close_at = resolve_day_hours(working_hours, candidate.start.date())
    return open_at <= candidate.start and candidate.end <= close_at


def generate_available_slots(
    working_hours: Optional[Mapping[str, Any]],
    weekday: str,
    duration_minutes: int,
    active_intervals: Sequence[Interval],
    day: date,
) -> List[str]:
    """
    Offerable start times for a service on ``day``, as ascending "HH:MM" labels.

    Args:
        working_hours: weekday name -> {"open": "HH:MM", "close": "HH:MM"}
        weekday: lower-case weekday name of ``day``
        duration_minutes: service duration, whole minutes > 0
        active_intervals: intervals of the salon's active bookings around ``day``
        day: calendar date being queried

    Candidates start at opening time and advance on a 30 minute grid. A
    candidate is dropped when it would run past closing time or when it
    conflicts with an active interval. A closed day (open == close, or close
    before open) yields no slots. Nothing is cached; the active intervals can
    change between calls.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    open_at, close_at = _day_bounds(working_hours, weekday, day)

    step = timedelta(minutes=SLOT_GRANULARITY_MINUTES)
    slots: List[str] = []

    current = open_at
    while current < close_at:
        candidate = Interval.from_duration(current, duration_minutes)
        if candidate.end <= close_at and not conflicts(candidate, active_intervals):
            slots.append(current.strftime("%H:%M"))
        current += step

    return slots


def available_slots_for_day(
    working_hours: Optional[Mapping[str, Any]],
    duration_minutes: int,
    active_intervals: Sequence[Interval],
    day: date,
) -> List[str]:
    """generate_available_slots() with the weekday derived from ``day``."""
    return generate_available_slots(
        working_hours, weekday_name(day), duration_minutes, active_intervals, day
    )
