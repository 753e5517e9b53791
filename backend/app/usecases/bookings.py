import logging
from datetime import date
from typing import List, Optional, Tuple

from ..config import SlotWindows
from ..domain.availability import DEFAULT_SLOT_CAPACITY
from ..domain.errors import (
    BookingConflictError,
    BookingNotFoundError,
    InvalidBookingDataError,
    StaleReadError,
    VenueNotFoundError,
)
from ..domain.pricing import apply_quote, default_window, resolve_pricing
from ..domain.repositories import BookingRepository, UnavailableDateRepository, VenueRepository
from ..domain.services import SlotDecision, SlotRequest, stale_read_decision, validate_slot_request
from ..domain.slots import BookingView
from ..models import Booking, BookingStatus, Venue
from ..schemas import BookingCreate

logger = logging.getLogger(__name__)


async def _existing(
    booking_repo: BookingRepository,
    unavailable_repo: UnavailableDateRepository,
    venue_id: int,
    day: date,
) -> Tuple[List[BookingView], dict[date, Optional[str]]]:
    rows = await booking_repo.list_for_venue(venue_id, day, day)
    blocked = await unavailable_repo.blocked_dates(venue_id, day, day)
    return [BookingView.from_row(row) for row in rows], blocked


async def check_booking(
    booking_repo: BookingRepository,
    unavailable_repo: UnavailableDateRepository,
    *,
    request: SlotRequest,
    today: Optional[date] = None,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> SlotDecision:
    """Run the conflict validator against freshly read bookings. Never writes."""
    if request.venue_id is None or request.day is None:
        return validate_slot_request(request, [])

    if request.exclude_booking_id is not None:
        current = await booking_repo.get(request.exclude_booking_id)
        # Keeping an existing booking on its own (past) date is not a new past-date booking.
        if current is not None and current.start_date.date() == request.day:
            today = None

    bookings, blocked = await _existing(booking_repo, unavailable_repo, request.venue_id, request.day)
    return validate_slot_request(
        request,
        bookings,
        blocked_dates=blocked,
        today=today,
        slot_capacity=slot_capacity,
    )


def _fill_defaults(venue: Venue, candidate: BookingCreate, request: SlotRequest, windows: SlotWindows) -> None:
    if request.day is None or request.slot is None:
        raise InvalidBookingDataError("accepted booking has no date or slot")
    if candidate.total_amount is None and candidate.end_date is None:
        quote = resolve_pricing(
            venue,
            is_full_day=candidate.is_full_day,
            time_of_day=candidate.time_of_day,
            day=request.day,
            windows=windows,
        )
        apply_quote(candidate, quote)
    elif candidate.end_date is None:
        candidate.start_date, candidate.end_date = default_window(windows, request.slot, request.day)
    elif candidate.total_amount is None:
        quote = resolve_pricing(venue, is_full_day=candidate.is_full_day, time_of_day=candidate.time_of_day, windows=windows)
        candidate.total_amount = quote.amount
        if candidate.deposit_amount is None:
            candidate.deposit_amount = min(quote.deposit_amount, quote.amount)


def _reject(decision: SlotDecision, request: SlotRequest) -> BookingConflictError:
    logger.info(
        "booking rejected venue_id=%s day=%s slot=%s reason=%s",
        request.venue_id,
        request.day,
        decision.slot,
        decision.reason,
    )
    return BookingConflictError(decision)


async def create_booking(
    venue_repo: VenueRepository,
    booking_repo: BookingRepository,
    unavailable_repo: UnavailableDateRepository,
    *,
    payload: BookingCreate,
    windows: SlotWindows,
    today: Optional[date] = None,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> Booking:
    venue = await venue_repo.get_for_update(payload.venue_id)
    if venue is None:
        raise VenueNotFoundError("venue not found")

    # Re-validated under the venue lock; the client's earlier check may be stale.
    request = payload.to_slot_request()
    decision = await check_booking(
        booking_repo,
        unavailable_repo,
        request=request,
        today=today,
        slot_capacity=slot_capacity,
    )
    if not decision.ok:
        raise _reject(decision, request)

    _fill_defaults(venue, payload, request, windows)
    return await booking_repo.create(payload.to_values())


async def update_booking(
    venue_repo: VenueRepository,
    booking_repo: BookingRepository,
    unavailable_repo: UnavailableDateRepository,
    *,
    booking_id: int,
    payload: BookingCreate,
    version: int,
    windows: SlotWindows,
    today: Optional[date] = None,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> Tuple[Booking, BookingStatus]:
    booking = await booking_repo.get_for_update(booking_id)
    if booking is None:
        raise BookingNotFoundError("booking not found")
    if booking.version != version:
        raise StaleReadError("version mismatch")

    venue = await venue_repo.get_for_update(payload.venue_id)
    if venue is None:
        raise VenueNotFoundError("venue not found")

    request = payload.to_slot_request(exclude_booking_id=booking.id)
    if payload.status == BookingStatus.CANCELLED:
        # A cancelled booking holds no slot; only its shape is checked.
        decision = validate_slot_request(request, [])
    else:
        decision = await check_booking(
            booking_repo,
            unavailable_repo,
            request=request,
            today=today,
            slot_capacity=slot_capacity,
        )
    if not decision.ok:
        raise _reject(decision, request)

    _fill_defaults(venue, payload, request, windows)
    previous = booking.status
    updated = await booking_repo.update(booking, payload.to_values())
    return updated, previous


async def cancel_booking(
    booking_repo: BookingRepository,
    *,
    booking_id: int,
    version: int,
) -> Tuple[Booking, BookingStatus]:
    booking = await booking_repo.get_for_update(booking_id)
    if booking is None:
        raise BookingNotFoundError("booking not found")
    previous = booking.status
    # Idempotent: already cancelled returns as-is
    if booking.status == BookingStatus.CANCELLED:
        return booking, previous
    if booking.version != version:
        raise StaleReadError("version mismatch")
    updated = await booking_repo.update(booking, {"status": BookingStatus.CANCELLED})
    return updated, previous


async def get_booking(
    booking_repo: BookingRepository,
    *,
    booking_id: int,
) -> Booking | None:
    return await booking_repo.get(booking_id)


def stale_read_error(request: SlotRequest) -> BookingConflictError:
    """Conflict raised when persistence refused a write the validator had accepted."""
    logger.warning("stale read conflict venue_id=%s day=%s", request.venue_id, request.day)
    return BookingConflictError(stale_read_decision(request.slot))
