from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

import pytest
from app.domain.access import ActorContext
from app.domain.availability import DayState, compute_availability
from app.domain.calendar import CalendarCell, Decoration
from app.domain.errors import PricingUnavailableError, VenueNotFoundError
from app.domain.pricing import PricingQuote
from app.domain.slots import BookingView, Slot
from app.models import BookingStatus, TimeOfDay
from app.routers import availability as availability_router
from app.routers import venues as venues_router
from fastapi import HTTPException

ACTOR = ActorContext.from_role(user_id=9, role="admin")
DAY = date(2030, 6, 1)


def _view(booking_id: int, venue_id: int = 1, tod: TimeOfDay | None = TimeOfDay.MORNING) -> BookingView:
    return BookingView(
        id=booking_id,
        venue_id=venue_id,
        start_date=datetime(2030, 6, 1, 9),
        end_date=datetime(2030, 6, 1, 13),
        is_full_day=tod is None,
        time_of_day=tod,
        status=BookingStatus.CONFIRMED,
    )


@pytest.fixture(autouse=True)
def _fake_repos(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SqlAlchemyVenueRepository", "SqlAlchemyBookingRepository", "SqlAlchemyUnavailableDateRepository"):
        monkeypatch.setattr(availability_router, name, lambda s: s)
    monkeypatch.setattr(venues_router, "SqlAlchemyVenueRepository", lambda s: s)


@pytest.mark.asyncio
async def test_venue_availability_reports_open_slots(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_get_day_availability(*args: Any, venue_id: int, day: date, slot_capacity: int) -> Any:
        return compute_availability(venue_id, day, [_view(5)], slot_capacity=slot_capacity)

    monkeypatch.setattr(availability_router.availability_usecase, "get_day_availability", fake_get_day_availability)

    result = await availability_router.get_venue_availability(venue_id=1, day=DAY, session=object(), actor=ACTOR)  # type: ignore[arg-type]

    assert result.full_day_available is False
    assert result.morning_available is False
    assert result.evening_available is True
    assert result.state == DayState.PARTIAL
    assert result.available_slots == [Slot.EVENING]
    assert result.occupants[Slot.MORNING] == [5]


@pytest.mark.asyncio
async def test_unknown_venue_is_404(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_get_day_availability(*args: Any, **kwargs: Any) -> Any:
        raise VenueNotFoundError("venue not found")

    monkeypatch.setattr(availability_router.availability_usecase, "get_day_availability", fake_get_day_availability)

    with pytest.raises(HTTPException) as excinfo:
        await availability_router.get_venue_availability(venue_id=404, day=DAY, session=object(), actor=ACTOR)  # type: ignore[arg-type]
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_list_availability_carries_venue_names(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_list(*args: Any, day: date, slot_capacity: int) -> Any:
        views = [_view(5, venue_id=1, tod=None)]
        return [
            (SimpleNamespace(id=1, name="Hall A"), compute_availability(1, day, views)),
            (SimpleNamespace(id=2, name="Hall B"), compute_availability(2, day, views)),
        ]

    monkeypatch.setattr(availability_router.availability_usecase, "list_venue_availability", fake_list)

    rows = await availability_router.list_availability(day=DAY, session=object(), actor=ACTOR)  # type: ignore[arg-type]

    assert [(r.venue_name, r.state) for r in rows] == [("Hall A", DayState.FULL), ("Hall B", DayState.FREE)]


@pytest.mark.asyncio
async def test_calendar_range_error_is_400(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(HTTPException) as excinfo:
        await availability_router.get_calendar(
            start=date(2030, 6, 3),
            end=date(2030, 6, 1),
            venue_id=None,
            include_cancelled=False,
            session=object(),  # type: ignore[arg-type]
            actor=ACTOR,
        )
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_calendar_returns_cells(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_calendar(*args: Any, **kwargs: Any) -> list[CalendarCell]:
        return [
            CalendarCell(day=DAY, decoration=Decoration.CONFIRMED, badge_count=2),
            CalendarCell(day=date(2030, 6, 2), decoration=Decoration.NONE, badge_count=0),
        ]

    monkeypatch.setattr(availability_router.availability_usecase, "get_calendar", fake_calendar)

    cells = await availability_router.get_calendar(
        start=DAY,
        end=date(2030, 6, 2),
        venue_id=None,
        include_cancelled=False,
        session=object(),  # type: ignore[arg-type]
        actor=ACTOR,
    )
    assert [(c.decoration, c.badge_count) for c in cells] == [(Decoration.CONFIRMED, 2), (Decoration.NONE, 0)]


@pytest.mark.asyncio
async def test_quote_returns_slot_price(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_quote(*args: Any, **kwargs: Any) -> PricingQuote:
        assert kwargs["time_of_day"] == TimeOfDay.EVENING
        return PricingQuote(
            slot=Slot.EVENING,
            amount=Decimal("600"),
            deposit_amount=Decimal("100"),
            start_date=datetime(2030, 6, 1, 14),
            end_date=datetime(2030, 6, 1, 18),
        )

    monkeypatch.setattr(venues_router.venue_usecase, "quote_booking", fake_quote)

    quote = await venues_router.quote_booking(
        venue_id=1,
        is_full_day=False,
        time_of_day=TimeOfDay.EVENING,
        day=DAY,
        session=object(),  # type: ignore[arg-type]
        actor=ACTOR,
    )
    assert quote.slot == Slot.EVENING
    assert quote.amount == Decimal("600")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "status_code"),
    [(VenueNotFoundError("venue not found"), 404), (PricingUnavailableError("no price"), 422)],
)
async def test_quote_errors_map_to_http(monkeypatch: pytest.MonkeyPatch, error: Exception, status_code: int) -> None:
    async def fake_quote(*args: Any, **kwargs: Any) -> PricingQuote:
        raise error

    monkeypatch.setattr(venues_router.venue_usecase, "quote_booking", fake_quote)

    with pytest.raises(HTTPException) as excinfo:
        await venues_router.quote_booking(
            venue_id=1,
            is_full_day=True,
            time_of_day=None,
            day=None,
            session=object(),  # type: ignore[arg-type]
            actor=ACTOR,
        )
    assert excinfo.value.status_code == status_code
