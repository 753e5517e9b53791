from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_session, require_permission
from ..domain.access import ActorContext, Permission
from ..domain.errors import PricingUnavailableError, VenueNotFoundError
from ..infrastructure.repositories import SqlAlchemyVenueRepository
from ..models import TimeOfDay
from ..schemas import PricingQuoteRead
from ..usecases import venues as venue_usecase

router = APIRouter(prefix="/venues", tags=["venues"])


@router.get("/{venue_id}/quote", response_model=PricingQuoteRead)
async def quote_booking(
    venue_id: int,
    is_full_day: bool = Query(default=True),
    time_of_day: Optional[TimeOfDay] = Query(default=None),
    day: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission("venues", Permission.READ)),
) -> PricingQuoteRead:
    try:
        quote = await venue_usecase.quote_booking(
            SqlAlchemyVenueRepository(session),
            venue_id=venue_id,
            is_full_day=is_full_day,
            time_of_day=time_of_day,
            day=day,
            windows=get_settings().slot_windows(),
        )
    except VenueNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="venue not found")
    except PricingUnavailableError:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="venue has no price for this booking type")
    return PricingQuoteRead.from_quote(venue_id=venue_id, quote=quote)
