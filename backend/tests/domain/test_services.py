from datetime import date, datetime, time, timedelta
from itertools import product
from typing import Optional

import pytest
from app.domain.availability import bookings_on
from app.domain.services import ConflictReason, SlotRequest, validate_slot_request
from app.domain.slots import BookingView, Slot
from app.models import BookingStatus, TimeOfDay

V1 = 1


def _booking(
    booking_id: int,
    day: date,
    *,
    time_of_day: Optional[TimeOfDay] = None,
    status: BookingStatus = BookingStatus.CONFIRMED,
    venue_id: int = V1,
) -> BookingView:
    start = datetime.combine(day, time(9))
    return BookingView(
        id=booking_id,
        venue_id=venue_id,
        start_date=start,
        end_date=start + timedelta(hours=8),
        is_full_day=time_of_day is None,
        time_of_day=time_of_day,
        status=status,
    )


def _full(day: date, **kwargs: object) -> SlotRequest:
    return SlotRequest(venue_id=V1, day=day, is_full_day=True, **kwargs)  # type: ignore[arg-type]


def _half(day: date, time_of_day: Optional[TimeOfDay], **kwargs: object) -> SlotRequest:
    return SlotRequest(venue_id=V1, day=day, is_full_day=False, time_of_day=time_of_day, **kwargs)  # type: ignore[arg-type]


def test_half_day_request_against_full_day_booking_reports_full_day_conflict() -> None:
    day = date(2024, 6, 1)
    decision = validate_slot_request(_half(day, TimeOfDay.MORNING), [_booking(1, day)])
    assert decision.ok is False
    assert decision.reason == ConflictReason.FULL_DAY_CONFLICT
    assert decision.field == "start_date"


def test_evening_accepted_next_to_morning() -> None:
    day = date(2024, 6, 2)
    decision = validate_slot_request(_half(day, TimeOfDay.EVENING), [_booking(1, day, time_of_day=TimeOfDay.MORNING)])
    assert decision.ok is True
    assert decision.slot == Slot.EVENING


def test_full_day_rejected_when_a_half_day_is_taken() -> None:
    day = date(2024, 6, 2)
    decision = validate_slot_request(_full(day), [_booking(1, day, time_of_day=TimeOfDay.MORNING)])
    assert decision.reason == ConflictReason.FULL_DAY_CONFLICT
    assert decision.slot == Slot.FULL


def test_half_day_without_time_of_day_is_rejected() -> None:
    decision = validate_slot_request(_half(date(2024, 6, 3), None), [])
    assert decision.reason == ConflictReason.MISSING_TIME_OF_DAY
    assert decision.field == "time_of_day"


def test_missing_time_of_day_is_reported_before_conflicts() -> None:
    day = date(2024, 6, 3)
    decision = validate_slot_request(_half(day, None), [_booking(1, day)])
    assert decision.reason == ConflictReason.MISSING_TIME_OF_DAY


def test_cancelled_full_day_is_invisible() -> None:
    day = date(2024, 6, 4)
    decision = validate_slot_request(_full(day), [_booking(1, day, status=BookingStatus.CANCELLED)])
    assert decision.ok is True


def test_same_slot_taken_names_the_slot() -> None:
    day = date(2024, 6, 5)
    decision = validate_slot_request(_half(day, TimeOfDay.MORNING), [_booking(1, day, time_of_day=TimeOfDay.MORNING)])
    assert decision.reason == ConflictReason.TIME_SLOT_CONFLICT
    assert decision.slot == Slot.MORNING
    assert decision.message == "This morning slot is already booked"


@pytest.mark.parametrize("venue_id, day", [(None, date(2024, 6, 1)), (V1, None)])
def test_missing_venue_or_date_is_incomplete_not_invalid(venue_id: Optional[int], day: Optional[date]) -> None:
    decision = validate_slot_request(SlotRequest(venue_id=venue_id, day=day, is_full_day=True), [])
    assert decision.ok is False
    assert decision.incomplete is True
    assert decision.message is None


def test_editing_a_booking_does_not_conflict_with_itself() -> None:
    day = date(2024, 6, 6)
    existing = [_booking(42, day, time_of_day=TimeOfDay.EVENING)]
    assert validate_slot_request(_half(day, TimeOfDay.EVENING), existing).ok is False
    assert validate_slot_request(_half(day, TimeOfDay.EVENING, exclude_booking_id=42), existing).ok is True
    assert validate_slot_request(_full(day, exclude_booking_id=42), existing).ok is True


def test_other_venues_do_not_conflict() -> None:
    day = date(2024, 6, 7)
    assert validate_slot_request(_full(day), [_booking(1, day, venue_id=2)]).ok is True


def test_cancel_then_rebook_same_slot_is_accepted() -> None:
    day = date(2024, 6, 8)
    booking = _booking(1, day, time_of_day=TimeOfDay.MORNING)
    assert validate_slot_request(_half(day, TimeOfDay.MORNING), [booking]).ok is False
    cancelled = _booking(1, day, time_of_day=TimeOfDay.MORNING, status=BookingStatus.CANCELLED)
    assert validate_slot_request(_half(day, TimeOfDay.MORNING), [cancelled]).ok is True


def test_blocked_date_rejected_with_reason() -> None:
    day = date(2024, 6, 9)
    decision = validate_slot_request(_half(day, TimeOfDay.MORNING), [], blocked_dates={day: "Renovation"})
    assert decision.reason == ConflictReason.DATE_BLOCKED
    assert decision.message == "Renovation"


def test_past_date_rejected_only_when_today_given() -> None:
    day = date(2024, 6, 10)
    assert validate_slot_request(_full(day), []).ok is True
    decision = validate_slot_request(_full(day), [], today=day + timedelta(days=1))
    assert decision.reason == ConflictReason.PAST_DATE
    assert validate_slot_request(_full(day), [], today=day).ok is True


def test_alternate_capacity_allows_two_per_slot_but_no_more() -> None:
    day = date(2024, 6, 11)
    one = [_booking(1, day, time_of_day=TimeOfDay.MORNING)]
    two = one + [_booking(2, day, time_of_day=TimeOfDay.MORNING)]
    assert validate_slot_request(_half(day, TimeOfDay.MORNING), one, slot_capacity=2).ok is True
    assert validate_slot_request(_half(day, TimeOfDay.MORNING), two, slot_capacity=2).reason == ConflictReason.TIME_SLOT_CONFLICT
    assert validate_slot_request(_full(day), one, slot_capacity=2).reason == ConflictReason.FULL_DAY_CONFLICT


_REQUESTS = [
    (True, None),
    (False, TimeOfDay.MORNING),
    (False, TimeOfDay.EVENING),
]


@pytest.mark.parametrize("sequence", list(product(_REQUESTS, repeat=3)))
def test_accepted_insertions_never_break_slot_invariants(sequence: tuple) -> None:
    day = date(2024, 6, 12)
    accepted: list[BookingView] = []
    for index, (is_full_day, time_of_day) in enumerate(sequence, start=1):
        request = SlotRequest(venue_id=V1, day=day, is_full_day=is_full_day, time_of_day=time_of_day)
        if validate_slot_request(request, accepted).ok:
            accepted.append(_booking(index, day, time_of_day=time_of_day))

    occupying = bookings_on(V1, day, accepted)
    full_days = [b for b in occupying if b.is_full_day]
    mornings = [b for b in occupying if b.time_of_day == TimeOfDay.MORNING]
    evenings = [b for b in occupying if b.time_of_day == TimeOfDay.EVENING]
    assert len(full_days) <= 1
    assert len(mornings) <= 1 and len(evenings) <= 1
    assert not (full_days and (mornings or evenings))
