from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Iterable, Optional

from .slots import HALF_DAY_SLOTS, BookingView, Slot, occupied_slots

DEFAULT_SLOT_CAPACITY = 1


class DayState(StrEnum):
    FREE = "free"
    PARTIAL = "partial"
    FULL = "full"


@dataclass(frozen=True)
class AvailabilityResult:
    venue_id: int
    day: date
    full_day_available: bool
    morning_available: bool
    evening_available: bool
    occupants: dict[Slot, tuple[BookingView, ...]] = field(default_factory=dict)
    blocked: bool = False
    blocked_reason: Optional[str] = None

    @property
    def has_full_day(self) -> bool:
        return bool(self.occupants.get(Slot.FULL))

    @property
    def occupant_count(self) -> int:
        return sum(len(items) for items in self.occupants.values())

    @property
    def state(self) -> DayState:
        if self.blocked or not (self.full_day_available or self.morning_available or self.evening_available):
            return DayState.FULL
        if self.occupant_count:
            return DayState.PARTIAL
        return DayState.FREE

    def is_available(self, slot: Slot) -> bool:
        if slot == Slot.FULL:
            return self.full_day_available
        if slot == Slot.MORNING:
            return self.morning_available
        return self.evening_available

    def available_slots(self) -> list[Slot]:
        return [slot for slot in (Slot.FULL, *HALF_DAY_SLOTS) if self.is_available(slot)]


def bookings_on(venue_id: int, day: date, bookings: Iterable[BookingView]) -> list[BookingView]:
    """Non-cancelled bookings of ``venue_id`` whose start falls on ``day``."""
    return [
        b for b in bookings
        if b.venue_id is not None and b.venue_id == venue_id and b.date == day and not b.is_cancelled
    ]


def compute_availability(
    venue_id: int,
    day: date,
    bookings: Iterable[BookingView],
    *,
    blocked: bool = False,
    blocked_reason: Optional[str] = None,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> AvailabilityResult:
    """Reduce the booking set to slot occupancy for one venue and date.

    A full-day booking locks the whole date. Otherwise each half-day slot takes
    up to ``slot_capacity`` bookings and the full day is available only while
    neither half-day slot holds any booking. A blocked date is unavailable for
    every slot.
    """
    occupants: dict[Slot, list[BookingView]] = {Slot.FULL: [], Slot.MORNING: [], Slot.EVENING: []}
    for booking in bookings_on(venue_id, day, bookings):
        for slot in occupied_slots(booking):
            occupants[slot].append(booking)

    frozen = {slot: tuple(items) for slot, items in occupants.items()}
    if blocked or frozen[Slot.FULL]:
        return AvailabilityResult(
            venue_id=venue_id,
            day=day,
            full_day_available=False,
            morning_available=False,
            evening_available=False,
            occupants=frozen,
            blocked=blocked,
            blocked_reason=blocked_reason if blocked else None,
        )

    morning_count = len(frozen[Slot.MORNING])
    evening_count = len(frozen[Slot.EVENING])
    return AvailabilityResult(
        venue_id=venue_id,
        day=day,
        full_day_available=morning_count == 0 and evening_count == 0,
        morning_available=morning_count < slot_capacity,
        evening_available=evening_count < slot_capacity,
        occupants=frozen,
    )
