from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol

from ..models import Booking, Venue
from .access import ActorContext


class VenueRepository(Protocol):
    async def get(self, venue_id: int) -> Venue | None: ...

    async def get_for_update(self, venue_id: int) -> Venue | None: ...

    async def list_all(self) -> list[Venue]: ...


class BookingRepository(Protocol):
    async def get(self, booking_id: int) -> Booking | None: ...

    async def get_for_update(self, booking_id: int) -> Booking | None: ...

    async def list_for_venue(self, venue_id: int, start: date, end: date) -> list[Booking]: ...

    async def list_between(self, start: date, end: date) -> list[Booking]: ...

    async def create(self, values: Mapping[str, Any]) -> Booking: ...

    async def update(self, booking: Booking, values: Mapping[str, Any]) -> Booking: ...


class UnavailableDateRepository(Protocol):
    async def blocked_dates(self, venue_id: int, start: date, end: date) -> dict[date, Optional[str]]: ...

    async def blocked_venues(self, day: date) -> dict[int, Optional[str]]: ...


class UserRepository(Protocol):
    async def get_actor(self, user_id: int) -> ActorContext | None: ...
