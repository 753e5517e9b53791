from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import StrEnum
from typing import Iterable, Mapping, Optional

from ..models import BookingStatus
from .availability import DEFAULT_SLOT_CAPACITY, DayState, compute_availability
from .slots import BookingView


class Decoration(StrEnum):
    NONE = "none"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class CalendarCell:
    day: date
    decoration: Decoration
    badge_count: int
    state: Optional[DayState] = None


def _on_day(day: date, bookings: Iterable[BookingView], venue_id: Optional[int]) -> list[BookingView]:
    return [
        b for b in bookings
        if b.venue_id is not None and b.date == day and (venue_id is None or b.venue_id == venue_id)
    ]


def decorate_day(
    day: date,
    bookings: Iterable[BookingView],
    *,
    venue_id: Optional[int] = None,
    blocked: bool = False,
    include_cancelled: bool = False,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> CalendarCell:
    """Decorate one calendar day.

    Without ``venue_id`` the cell aggregates every venue and carries no day state.
    Cancelled bookings only show (as CANCELLED) when ``include_cancelled`` is set
    and nothing else occupies the day.
    """
    todays = _on_day(day, bookings, venue_id)
    occupying = [b for b in todays if not b.is_cancelled]

    state: Optional[DayState] = None
    if venue_id is not None:
        state = compute_availability(venue_id, day, todays, blocked=blocked, slot_capacity=slot_capacity).state

    if blocked:
        decoration = Decoration.BLOCKED
    elif any(b.status == BookingStatus.CONFIRMED for b in occupying):
        decoration = Decoration.CONFIRMED
    elif occupying:
        decoration = Decoration.PENDING
    elif include_cancelled and todays:
        decoration = Decoration.CANCELLED
    else:
        decoration = Decoration.NONE
    return CalendarCell(day=day, decoration=decoration, badge_count=len(occupying), state=state)


def decorate_range(
    start: date,
    end: date,
    bookings: Iterable[BookingView],
    *,
    venue_id: Optional[int] = None,
    blocked_dates: Optional[Mapping[date, Optional[str]]] = None,
    include_cancelled: bool = False,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> list[CalendarCell]:
    """Decorate every day from ``start`` to ``end`` inclusive."""
    if start > end:
        raise ValueError("start must not be after end")
    items = list(bookings)
    blocked_dates = blocked_dates or {}
    cells: list[CalendarCell] = []
    day = start
    while day <= end:
        cells.append(
            decorate_day(
                day,
                items,
                venue_id=venue_id,
                blocked=day in blocked_dates,
                include_cancelled=include_cancelled,
                slot_capacity=slot_capacity,
            )
        )
        day += timedelta(days=1)
    return cells
