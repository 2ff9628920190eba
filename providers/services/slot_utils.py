"""
slot_utils.py
-------------
Helpers for turning a provider's working window into fixed-length slots.

All intervals are half-open [start, end) on a single day, expressed as
datetime.time values. Arithmetic goes through a fixed reference date so the
functions stay pure (no "today" involved).
"""

from datetime import date, datetime, time, timedelta
from typing import NamedTuple

from django.utils import timezone

_REFERENCE_DAY = date(2000, 1, 3)


class Slot(NamedTuple):
    start: time
    end: time

    def as_dict(self):
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


def add_minutes(t: time, minutes: int) -> time:
    """t + minutes on the same day. Raises ValueError past midnight."""
    moved = datetime.combine(_REFERENCE_DAY, t) + timedelta(minutes=minutes)
    if moved.date() != _REFERENCE_DAY:
        raise ValueError("Interval runs past midnight.")
    return moved.time()


def overlaps(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open overlap: touching intervals do not overlap."""
    return start_a < end_b and end_a > start_b


def generate_slots(open_time: time, close_time: time, duration_minutes: int):
    """
    Candidate slots stepping from open_time by duration_minutes.
    Only slots that end by close_time are returned.
    """
    if duration_minutes <= 0 or close_time <= open_time:
        return []

    step = timedelta(minutes=duration_minutes)
    current = datetime.combine(_REFERENCE_DAY, open_time)
    close = datetime.combine(_REFERENCE_DAY, close_time)

    slots = []
    while current + step <= close:
        slots.append(Slot(current.time(), (current + step).time()))
        current += step
    return slots


def without_booked(slots, booked):
    """
    Drop every slot that overlaps any (start, end) pair in `booked`.
    """
    booked = list(booked)
    return [
        s for s in slots
        if not any(overlaps(s.start, s.end, b_start, b_end) for b_start, b_end in booked)
    ]


def local_now(now=None) -> datetime:
    """Naive wall-clock datetime in the project's TIME_ZONE."""
    now = now or timezone.now()
    if timezone.is_aware(now):
        now = timezone.localtime(now)
    return now.replace(tzinfo=None)


def not_before(slots, day: date, earliest: datetime):
    """Keep slots on `day` whose start is at or after the naive datetime `earliest`."""
    return [s for s in slots if datetime.combine(day, s.start) >= earliest]
