from datetime import date
from typing import List, Optional, Tuple

from ..domain.availability import DEFAULT_SLOT_CAPACITY, AvailabilityResult, compute_availability
from ..domain.calendar import CalendarCell, decorate_range
from ..domain.errors import VenueNotFoundError
from ..domain.repositories import BookingRepository, UnavailableDateRepository, VenueRepository
from ..domain.slots import BookingView
from ..models import Venue

MAX_CALENDAR_DAYS = 366


async def get_day_availability(
    venue_repo: VenueRepository,
    booking_repo: BookingRepository,
    unavailable_repo: UnavailableDateRepository,
    *,
    venue_id: int,
    day: date,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> AvailabilityResult:
    venue = await venue_repo.get(venue_id)
    if venue is None:
        raise VenueNotFoundError("venue not found")
    rows = await booking_repo.list_for_venue(venue_id, day, day)
    blocked = await unavailable_repo.blocked_dates(venue_id, day, day)
    return compute_availability(
        venue_id,
        day,
        [BookingView.from_row(row) for row in rows],
        blocked=day in blocked,
        blocked_reason=blocked.get(day),
        slot_capacity=slot_capacity,
    )


async def list_venue_availability(
    venue_repo: VenueRepository,
    booking_repo: BookingRepository,
    unavailable_repo: UnavailableDateRepository,
    *,
    day: date,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> List[Tuple[Venue, AvailabilityResult]]:
    venues = await venue_repo.list_all()
    views = [BookingView.from_row(row) for row in await booking_repo.list_between(day, day)]
    blocked = await unavailable_repo.blocked_venues(day)
    items: List[Tuple[Venue, AvailabilityResult]] = []
    for venue in venues:
        result = compute_availability(
            venue.id,
            day,
            views,
            blocked=venue.id in blocked,
            blocked_reason=blocked.get(venue.id),
            slot_capacity=slot_capacity,
        )
        items.append((venue, result))
    return items


async def get_calendar(
    booking_repo: BookingRepository,
    unavailable_repo: UnavailableDateRepository,
    *,
    start: date,
    end: date,
    venue_id: Optional[int] = None,
    include_cancelled: bool = False,
    slot_capacity: int = DEFAULT_SLOT_CAPACITY,
) -> List[CalendarCell]:
    if start > end:
        raise ValueError("start must not be after end")
    if (end - start).days >= MAX_CALENDAR_DAYS:
        raise ValueError(f"calendar range is limited to {MAX_CALENDAR_DAYS} days")

    if venue_id is None:
        rows = await booking_repo.list_between(start, end)
        blocked = {}
    else:
        rows = await booking_repo.list_for_venue(venue_id, start, end)
        blocked = await unavailable_repo.blocked_dates(venue_id, start, end)
    return decorate_range(
        start,
        end,
        [BookingView.from_row(row) for row in rows],
        venue_id=venue_id,
        blocked_dates=blocked,
        include_cancelled=include_cancelled,
        slot_capacity=slot_capacity,
    )
