from datetime import date
from typing import Optional

from ..config import SlotWindows
from ..domain.errors import VenueNotFoundError
from ..domain.pricing import PricingQuote, resolve_pricing
from ..domain.repositories import VenueRepository
from ..models import TimeOfDay


async def quote_booking(
    venue_repo: VenueRepository,
    *,
    venue_id: int,
    is_full_day: bool,
    time_of_day: Optional[TimeOfDay],
    day: Optional[date],
    windows: SlotWindows,
) -> PricingQuote:
    venue = await venue_repo.get(venue_id)
    if venue is None:
        raise VenueNotFoundError("venue not found")
    return resolve_pricing(
        venue,
        is_full_day=is_full_day,
        time_of_day=time_of_day,
        day=day,
        windows=windows,
    )
