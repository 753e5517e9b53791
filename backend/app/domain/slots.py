"""
Slot vocabulary for venue bookings.

A venue/date is split into two half-day slots (morning, evening); a full-day
booking occupies the whole date. This module maps a booking projection to the
slot(s) it occupies and is the only place that interprets ``is_full_day`` and
``time_of_day`` on stored rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any, Optional

from ..models import BookingStatus, TimeOfDay
from .errors import InvalidBookingDataError


class Slot(StrEnum):
    FULL = "full"
    MORNING = "morning"
    EVENING = "evening"


HALF_DAY_SLOTS: tuple[Slot, ...] = (Slot.MORNING, Slot.EVENING)


@dataclass(frozen=True)
class BookingView:
    """Read-only projection of a stored booking, as consumed by the engine."""

    id: int
    venue_id: Optional[int]
    start_date: datetime
    end_date: datetime
    is_full_day: bool
    time_of_day: Optional[TimeOfDay]
    status: BookingStatus

    @property
    def date(self) -> date:
        return self.start_date.date()

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    @classmethod
    def from_row(cls, row: Any) -> "BookingView":
        time_of_day = row.time_of_day
        return cls(
            id=row.id,
            venue_id=row.venue_id,
            start_date=row.start_date,
            end_date=row.end_date,
            is_full_day=bool(row.is_full_day),
            time_of_day=TimeOfDay(time_of_day) if time_of_day else None,
            status=BookingStatus(row.status),
        )


def slot_for(time_of_day: TimeOfDay) -> Slot:
    return Slot(time_of_day.value)


def occupied_slots(booking: BookingView) -> frozenset[Slot]:
    """Return the slots a booking holds. Cancelled bookings hold nothing.

    Raises InvalidBookingDataError for a half-day booking without a time of day.
    """
    if booking.is_cancelled:
        return frozenset()
    if booking.is_full_day:
        return frozenset({Slot.FULL})
    if booking.time_of_day is None:
        raise InvalidBookingDataError(f"half-day booking {booking.id} has no time_of_day")
    return frozenset({slot_for(booking.time_of_day)})
