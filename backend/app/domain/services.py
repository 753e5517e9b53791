from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Iterable, Mapping, Optional

from ..models import TimeOfDay
from .availability import DEFAULT_SLOT_CAPACITY, AvailabilityResult, compute_availability
from .slots import BookingView, Slot, slot_for

MSG_MISSING_TIME_OF_DAY = "Time of day is required for half-day bookings"
MSG_FULL_DAY_BOOKED = "This date already has a full-day booking"
MSG_DATE_HAS_BOOKINGS = "This date already has a booking, a full day is not available"
MSG_SLOT_BOOKED = "This {slot} slot is already booked"
MSG_DATE_BLOCKED = "This date is unavailable for the venue"
MSG_PAST_DATE = "Cannot add new bookings to past dates"
MSG_STALE_READ = "This date was booked by someone else in the meantime. Please refresh and retry."


class ConflictReason(StrEnum):
    VENUE_OR_DATE_MISSING = "VENUE_OR_DATE_MISSING"
    MISSING_TIME_OF_DAY = "MISSING_TIME_OF_DAY"
    FULL_DAY_CONFLICT = "FULL_DAY_CONFLICT"
    TIME_SLOT_CONFLICT = "TIME_SLOT_CONFLICT"
    STALE_READ_CONFLICT = "STALE_READ_CONFLICT"
    DATE_BLOCKED = "DATE_BLOCKED"
    PAST_DATE = "PAST_DATE"


@dataclass(frozen=True)
class SlotRequest:
    venue_id: Optional[int]
    day: Optional[date]
    is_full_day: bool
    time_of_day: Optional[TimeOfDay] = None
    exclude_booking_id: Optional[int] = None

    @property
    def slot(self) -> Optional[Slot]:
        if self.is_full_day:
            return Slot.FULL
        return slot_for(self.time_of_day) if self.time_of_day else None


@dataclass(frozen=True)
class SlotDecision:
    ok: bool
    reason: Optional[ConflictReason] = None
    field: Optional[str] = None
    slot: Optional[Slot] = None
    message: Optional[str] = None
    availability: Optional[AvailabilityResult] = None

    @property
    def incomplete(self) -> bool:
        return self.reason == ConflictReason.VENUE_OR_DATE_MISSING


def _reject(
    reason: ConflictReason,
    *,
    field: Optional[str],
    message: Optional[str],
    slot: Optional[Slot] = None,
    availability: Optional[AvailabilityResult] = None,
) -> SlotDecision:
    return SlotDecision(ok=False, reason=reason, field=field, slot=slot, message=message, availability=availability)


def stale_read_decision(slot: Optional[Slot] = None) -> SlotDecision:
    return _reject(ConflictReason.STALE_READ_CONFLICT, field=None, slot=slot, message=MSG_STALE_READ)


def validate_slot_request(
    request: SlotRequest,
    bookings: Iterable[BookingView],
    *,
    blocked_dates: Optional[Mapping[date, Optional[str]]] = None,
    today: Optional[date] = None,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> SlotDecision:
    """
    Pure validation of a candidate booking against the existing booking set.
    ``bookings`` may span any venue and date; filtering happens here.
    ``blocked_dates`` holds the manually blocked dates of the requested venue.
    Returns a SlotDecision; business-rule outcomes never raise.
    """
    if request.venue_id is None or request.day is None:
        return _reject(ConflictReason.VENUE_OR_DATE_MISSING, field=None, message=None)
    if not request.is_full_day and request.time_of_day is None:
        return _reject(ConflictReason.MISSING_TIME_OF_DAY, field="time_of_day", message=MSG_MISSING_TIME_OF_DAY)
    if today is not None and request.day < today:
        return _reject(ConflictReason.PAST_DATE, field="start_date", message=MSG_PAST_DATE)

    others = [b for b in bookings if request.exclude_booking_id is None or b.id != request.exclude_booking_id]
    blocked_dates = blocked_dates or {}
    availability = compute_availability(
        request.venue_id,
        request.day,
        others,
        blocked=request.day in blocked_dates,
        blocked_reason=blocked_dates.get(request.day),
        slot_capacity=slot_capacity,
    )
    slot = request.slot

    if availability.blocked:
        return _reject(
            ConflictReason.DATE_BLOCKED,
            field="start_date",
            slot=slot,
            message=availability.blocked_reason or MSG_DATE_BLOCKED,
            availability=availability,
        )
    # A full-day booking locks the date whatever slot was asked for.
    if availability.has_full_day:
        return _reject(
            ConflictReason.FULL_DAY_CONFLICT,
            field="start_date",
            slot=slot,
            message=MSG_FULL_DAY_BOOKED,
            availability=availability,
        )
    if request.is_full_day:
        if not availability.full_day_available:
            return _reject(
                ConflictReason.FULL_DAY_CONFLICT,
                field="start_date",
                slot=Slot.FULL,
                message=MSG_DATE_HAS_BOOKINGS,
                availability=availability,
            )
    elif slot is not None and not availability.is_available(slot):
        return _reject(
            ConflictReason.TIME_SLOT_CONFLICT,
            field="time_of_day",
            slot=slot,
            message=MSG_SLOT_BOOKED.format(slot=slot.value),
            availability=availability,
        )
    return SlotDecision(ok=True, slot=slot, availability=availability)
