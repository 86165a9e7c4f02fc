"""
Conflict Detection

Half-open interval arithmetic shared by slot generation and by the
commit-time check every BookingStore runs inside its atomic insert.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List

from salonbook.schemas.booking import ACTIVE_STATUSES


@dataclass(frozen=True)
class Interval:
    """[start, end) range of naive wall-clock datetimes."""

    start: datetime
    end: datetime

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "Interval":
        return cls(start, start + timedelta(minutes=minutes))

    def overlaps(self, other: "Interval") -> bool:
        # Touching boundaries do not overlap: back-to-back bookings are allowed
        return self.start < other.end and other.start < self.end


def conflicts(candidate: Interval, existing: Iterable[Interval]) -> bool:
    """
    Return True if the candidate overlaps any of the existing intervals.

    Callers pass only intervals of active bookings; see booking_intervals().
    """
    return any(candidate.overlaps(interval) for interval in existing)


def booking_interval(booking: Dict[str, Any]) -> Interval:
    """Interval occupied by a stored booking, using its duration snapshot."""
    return Interval.from_duration(booking["date"], int(booking["duration"]))


def booking_intervals(bookings: Iterable[Dict[str, Any]]) -> List[Interval]:
    """Intervals of the active bookings in ``bookings``; other statuses never block."""
    return [
        booking_interval(booking)
        for booking in bookings
        if booking.get("status") in ACTIVE_STATUSES
    ]


def lookup_window(day_start: datetime) -> Interval:
    """
    Range of booking start times that can reach into the given calendar day.

    No booking exceeds 24 hours, so anything that started on the previous day
    is included too. Slot queries and commit checks both use this window.
    """
    return Interval(day_start - timedelta(days=1), day_start + timedelta(days=1))
