from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_session, require_permission
from ..domain.access import ActorContext, Permission
from ..domain.errors import VenueNotFoundError
from ..infrastructure.repositories import (
    SqlAlchemyBookingRepository,
    SqlAlchemyUnavailableDateRepository,
    SqlAlchemyVenueRepository,
)
from ..schemas import AvailabilityRead, CalendarCellRead, VenueAvailabilityRead
from ..usecases import availability as availability_usecase

router = APIRouter(prefix="", tags=["availability"])


@router.get("/venues/{venue_id}/availability", response_model=AvailabilityRead)
async def get_venue_availability(
    venue_id: int,
    day: date = Query(..., description="venue-local date (YYYY-MM-DD)"),
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission("venues", Permission.READ)),
) -> AvailabilityRead:
    try:
        result = await availability_usecase.get_day_availability(
            SqlAlchemyVenueRepository(session),
            SqlAlchemyBookingRepository(session),
            SqlAlchemyUnavailableDateRepository(session),
            venue_id=venue_id,
            day=day,
            slot_capacity=get_settings().half_day_slot_capacity,
        )
    except VenueNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="venue not found")
    return AvailabilityRead.from_result(result)


@router.get("/availability", response_model=List[VenueAvailabilityRead])
async def list_availability(
    day: date = Query(..., description="venue-local date (YYYY-MM-DD)"),
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission("bookings", Permission.READ)),
) -> list[VenueAvailabilityRead]:
    rows = await availability_usecase.list_venue_availability(
        SqlAlchemyVenueRepository(session),
        SqlAlchemyBookingRepository(session),
        SqlAlchemyUnavailableDateRepository(session),
        day=day,
        slot_capacity=get_settings().half_day_slot_capacity,
    )
    return [
        VenueAvailabilityRead(venue_name=venue.name, **AvailabilityRead.from_result(result).model_dump())
        for venue, result in rows
    ]


@router.get("/calendar", response_model=List[CalendarCellRead])
async def get_calendar(
    start: date = Query(...),
    end: date = Query(...),
    venue_id: Optional[int] = Query(default=None),
    include_cancelled: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission("bookings", Permission.READ)),
) -> list[CalendarCellRead]:
    try:
        cells = await availability_usecase.get_calendar(
            SqlAlchemyBookingRepository(session),
            SqlAlchemyUnavailableDateRepository(session),
            start=start,
            end=end,
            venue_id=venue_id,
            include_cancelled=include_cancelled,
            slot_capacity=get_settings().half_day_slot_capacity,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return [CalendarCellRead.from_cell(cell) for cell in cells]
