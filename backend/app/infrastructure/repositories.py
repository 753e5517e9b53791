from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.access import ActorContext
from ..domain.repositories import (
    BookingRepository,
    UnavailableDateRepository,
    UserRepository,
    VenueRepository,
)
from ..models import Booking, Role, User, Venue, VenueUnavailableDate


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


class SqlAlchemyVenueRepository(VenueRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, venue_id: int) -> Venue | None:
        result = await self.session.scalar(select(Venue).where(Venue.id == venue_id))
        return result if isinstance(result, Venue) else None

    async def get_for_update(self, venue_id: int) -> Venue | None:
        # Serializes booking writers per venue.
        result = await self.session.scalar(select(Venue).where(Venue.id == venue_id).with_for_update())
        return result if isinstance(result, Venue) else None

    async def list_all(self) -> List[Venue]:
        rows = await self.session.scalars(select(Venue).order_by(Venue.name))
        return list(rows.all())


class SqlAlchemyBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, booking_id: int) -> Booking | None:
        result = await self.session.scalar(select(Booking).where(Booking.id == booking_id))
        return result if isinstance(result, Booking) else None

    async def get_for_update(self, booking_id: int) -> Booking | None:
        result = await self.session.scalar(select(Booking).where(Booking.id == booking_id).with_for_update())
        return result if isinstance(result, Booking) else None

    async def list_for_venue(self, venue_id: int, start: date, end: date) -> List[Booking]:
        lower, upper = _day_bounds(start, end)
        stmt: Select[Tuple[Booking]] = (
            select(Booking)
            .where(
                Booking.venue_id == venue_id,
                Booking.start_date >= lower,
                Booking.start_date < upper,
            )
            .order_by(Booking.start_date)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_between(self, start: date, end: date) -> List[Booking]:
        lower, upper = _day_bounds(start, end)
        stmt: Select[Tuple[Booking]] = (
            select(Booking)
            .where(
                Booking.venue_id.is_not(None),
                Booking.start_date >= lower,
                Booking.start_date < upper,
            )
            .order_by(Booking.start_date)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def create(self, values: Mapping[str, Any]) -> Booking:
        now = _utc_now_naive()
        booking = Booking(**values, version=1, created_at=now, updated_at=now)
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def update(self, booking: Booking, values: Mapping[str, Any]) -> Booking:
        for key, value in values.items():
            setattr(booking, key, value)
        booking.version += 1
        booking.updated_at = _utc_now_naive()
        self.session.add(booking)
        await self.session.flush()
        return booking


class SqlAlchemyUnavailableDateRepository(UnavailableDateRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def blocked_dates(self, venue_id: int, start: date, end: date) -> dict[date, Optional[str]]:
        stmt = select(VenueUnavailableDate.date, VenueUnavailableDate.reason).where(
            VenueUnavailableDate.venue_id == venue_id,
            VenueUnavailableDate.date >= start,
            VenueUnavailableDate.date <= end,
        )
        rows = await self.session.execute(stmt)
        return {day: reason for day, reason in rows.all()}

    async def blocked_venues(self, day: date) -> dict[int, Optional[str]]:
        stmt = select(VenueUnavailableDate.venue_id, VenueUnavailableDate.reason).where(VenueUnavailableDate.date == day)
        rows = await self.session.execute(stmt)
        return {venue_id: reason for venue_id, reason in rows.all()}


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_actor(self, user_id: int) -> ActorContext | None:
        stmt = select(User, Role).outerjoin(Role, User.role_id == Role.id).where(User.id == user_id)
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None
        user, role = row
        return ActorContext.from_role(
            user_id=user.id,
            role=role.name if role is not None else None,
            accessible_pages=role.accessible_pages if role is not None else None,
            permissions=role.permissions if role is not None else None,
        )
