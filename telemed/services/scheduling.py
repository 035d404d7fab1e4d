"""
Scheduling Engine.

Pure conflict detection over a doctor's existing bookings. Holds no
state: the caller passes in the bookings to check against.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from telemed.errors import InvalidSchedule, TimeConflict
from telemed.schemas.consultation import Consultation


@dataclass(frozen=True)
class TimeSlot:
    """Half-open interval ``[start, end)``."""

    start: int
    end: int

    @classmethod
    def of(cls, start: int, duration: int) -> TimeSlot:
        return cls(start=start, end=start + duration)

    @property
    def duration(self) -> int:
        return self.end - self.start

    def overlaps(self, other: TimeSlot) -> bool:
        # Touching endpoints do not overlap
        return self.start < other.end and other.start < self.end


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_slot(start: Any, duration: Any) -> TimeSlot:
    """Build the requested slot, rejecting non-positive or non-integer values."""
    if not (_is_positive_int(start) and _is_positive_int(duration)):
        raise InvalidSchedule(start, duration)
    return TimeSlot.of(start, duration)


def find_conflict(
    doctor: str,
    slot: TimeSlot,
    existing_bookings: Iterable[Consultation],
) -> Optional[Consultation]:
    """
    Return the first active booking of ``doctor`` overlapping ``slot``.

    Completed consultations and bookings of other doctors are ignored.
    """
    for booking in existing_bookings:
        if booking.doctor != doctor or not booking.state.is_active:
            continue
        if slot.overlaps(TimeSlot.of(booking.start, booking.duration)):
            return booking
    return None


def check_conflict(
    doctor: str,
    start: int,
    duration: int,
    existing_bookings: Iterable[Consultation],
) -> TimeSlot:
    """
    Validate a requested booking against the doctor's calendar.

    Returns:
        The accepted slot.

    Raises:
        InvalidSchedule: start or duration is not a positive integer.
        TimeConflict: the slot overlaps an active booking.
    """
    slot = validate_slot(start, duration)
    conflict = find_conflict(doctor, slot, existing_bookings)
    if conflict is not None:
        raise TimeConflict(doctor, slot.start, slot.end, conflict.id)
    return slot
