from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer, model_validator

from .domain.availability import AvailabilityResult, DayState
from .domain.calendar import CalendarCell, Decoration
from .domain.pricing import PricingQuote
from .domain.services import SlotDecision, SlotRequest
from .domain.slots import Slot
from .models import Booking, BookingStatus, TimeOfDay
from .utils.time import to_venue_naive, venue_naive_to_aware


class BookingCreate(BaseModel):
    venue_id: int
    event_name: str = Field(min_length=1)
    event_type: str = Field(min_length=1)
    client_name: Optional[str] = None
    guest_count: int = Field(default=1, ge=1)
    start_date: datetime
    end_date: Optional[datetime] = None
    is_full_day: bool = True
    time_of_day: Optional[TimeOfDay] = None
    status: BookingStatus = BookingStatus.PENDING
    total_amount: Optional[Decimal] = Field(default=None, ge=0)
    deposit_amount: Optional[Decimal] = Field(default=None, ge=0)
    deposit_paid: bool = False
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_amounts_and_range(self) -> "BookingCreate":
        if self.deposit_amount is not None and self.total_amount is not None and self.deposit_amount > self.total_amount:
            raise ValueError("deposit amount cannot be greater than the total amount")
        if self.end_date is not None and to_venue_naive(self.end_date) < to_venue_naive(self.start_date):
            raise ValueError("end_date must not be before start_date")
        return self

    def to_slot_request(self, exclude_booking_id: Optional[int] = None) -> SlotRequest:
        return SlotRequest(
            venue_id=self.venue_id,
            day=to_venue_naive(self.start_date).date(),
            is_full_day=self.is_full_day,
            time_of_day=self.time_of_day,
            exclude_booking_id=exclude_booking_id,
        )

    def to_values(self) -> dict[str, Any]:
        values = self.model_dump(exclude={"version"})
        values["start_date"] = to_venue_naive(self.start_date)
        values["end_date"] = to_venue_naive(self.end_date) if self.end_date else values["start_date"]
        if self.is_full_day:
            values["time_of_day"] = None
        return values


class BookingUpdate(BookingCreate):
    version: Optional[int] = Field(default=None, ge=1)


class BookingCancel(BaseModel):
    version: Optional[int] = Field(default=None, ge=1)


class BookingCheck(BaseModel):
    """Partially filled form state; a missing venue or date is incomplete, not invalid."""

    venue_id: Optional[int] = None
    start_date: Optional[datetime] = None
    is_full_day: bool = True
    time_of_day: Optional[TimeOfDay] = None
    booking_id: Optional[int] = None

    def to_slot_request(self) -> SlotRequest:
        return SlotRequest(
            venue_id=self.venue_id,
            day=to_venue_naive(self.start_date).date() if self.start_date else None,
            is_full_day=self.is_full_day,
            time_of_day=self.time_of_day,
            exclude_booking_id=self.booking_id,
        )


class SlotDecisionRead(BaseModel):
    ok: bool
    code: Optional[str] = None
    field: Optional[str] = None
    slot: Optional[Slot] = None
    message: Optional[str] = None

    @classmethod
    def from_decision(cls, decision: SlotDecision) -> "SlotDecisionRead":
        return cls(
            ok=decision.ok,
            code=decision.reason.value if decision.reason else None,
            field=decision.field,
            slot=decision.slot,
            message=decision.message,
        )


class BookingRead(BaseModel):
    booking_id: int
    venue_id: Optional[int]
    event_name: str
    event_type: str
    client_name: Optional[str]
    guest_count: int
    start_date: datetime
    end_date: datetime
    is_full_day: bool
    time_of_day: Optional[TimeOfDay]
    status: BookingStatus
    total_amount: Optional[Decimal]
    deposit_amount: Optional[Decimal]
    deposit_paid: bool
    notes: Optional[str]
    version: int

    @field_serializer("start_date", "end_date")
    def _ser_datetime(self, dt: datetime) -> str:
        return venue_naive_to_aware(dt).isoformat()

    @classmethod
    def from_db(cls, *, booking: Booking) -> "BookingRead":
        return cls(
            booking_id=booking.id,
            venue_id=booking.venue_id,
            event_name=booking.event_name,
            event_type=booking.event_type,
            client_name=booking.client_name,
            guest_count=booking.guest_count,
            start_date=booking.start_date,
            end_date=booking.end_date,
            is_full_day=booking.is_full_day,
            time_of_day=booking.time_of_day,
            status=booking.status,
            total_amount=booking.total_amount,
            deposit_amount=booking.deposit_amount,
            deposit_paid=booking.deposit_paid,
            notes=booking.notes,
            version=booking.version,
        )


class AvailabilityRead(BaseModel):
    venue_id: int
    day: date
    full_day_available: bool
    morning_available: bool
    evening_available: bool
    state: DayState
    blocked: bool
    blocked_reason: Optional[str] = None
    available_slots: list[Slot]
    occupants: dict[Slot, list[int]]

    @classmethod
    def from_result(cls, result: AvailabilityResult) -> "AvailabilityRead":
        return cls(
            venue_id=result.venue_id,
            day=result.day,
            full_day_available=result.full_day_available,
            morning_available=result.morning_available,
            evening_available=result.evening_available,
            state=result.state,
            blocked=result.blocked,
            blocked_reason=result.blocked_reason,
            available_slots=result.available_slots(),
            occupants={slot: [b.id for b in items] for slot, items in result.occupants.items()},
        )


class VenueAvailabilityRead(AvailabilityRead):
    venue_name: str


class CalendarCellRead(BaseModel):
    day: date
    decoration: Decoration
    badge_count: int
    state: Optional[DayState] = None

    @classmethod
    def from_cell(cls, cell: CalendarCell) -> "CalendarCellRead":
        return cls(day=cell.day, decoration=cell.decoration, badge_count=cell.badge_count, state=cell.state)


class PricingQuoteRead(BaseModel):
    venue_id: int
    slot: Optional[Slot]
    amount: Decimal
    deposit_amount: Decimal
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_serializer("start_date", "end_date")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return venue_naive_to_aware(dt).isoformat() if dt else None

    @classmethod
    def from_quote(cls, *, venue_id: int, quote: PricingQuote) -> "PricingQuoteRead":
        return cls(
            venue_id=venue_id,
            slot=quote.slot,
            amount=quote.amount,
            deposit_amount=quote.deposit_amount,
            start_date=quote.start_date,
            end_date=quote.end_date,
        )
