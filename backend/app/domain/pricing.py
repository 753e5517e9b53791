from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..config import SlotWindows, TimeWindow
from ..models import TimeOfDay
from ..utils.time import at
from .errors import PricingUnavailableError
from .slots import Slot, slot_for


@dataclass(frozen=True)
class PricingQuote:
    slot: Optional[Slot]
    amount: Decimal
    deposit_amount: Decimal
    start_date: Optional[datetime]
    end_date: Optional[datetime]


def window_for(windows: SlotWindows, slot: Slot) -> TimeWindow:
    if slot == Slot.FULL:
        return windows.full_day
    if slot == Slot.MORNING:
        return windows.morning
    return windows.evening


def default_window(windows: SlotWindows, slot: Slot, day: date) -> tuple[datetime, datetime]:
    window = window_for(windows, slot)
    return at(day, window.start), at(day, window.end)


def resolve_pricing(
    venue: Any,
    *,
    is_full_day: bool,
    time_of_day: Optional[TimeOfDay] = None,
    day: Optional[date] = None,
    windows: SlotWindows,
) -> PricingQuote:
    """
    Resolve the default amount and time window for a slot choice.
    The slot-specific amount falls back to the venue's generic total amount;
    a venue with neither raises PricingUnavailableError. The window is only
    resolved once both the slot and the day are known.
    """
    specific = venue.full_day_amount if is_full_day else venue.half_day_amount
    amount = specific if specific is not None else venue.total_amount
    if amount is None:
        raise PricingUnavailableError(f"venue {venue.id} has no price for this booking type")

    slot: Optional[Slot] = Slot.FULL if is_full_day else (slot_for(time_of_day) if time_of_day else None)
    start_date = end_date = None
    if slot is not None and day is not None:
        start_date, end_date = default_window(windows, slot, day)

    return PricingQuote(
        slot=slot,
        amount=Decimal(amount),
        deposit_amount=Decimal(venue.deposit_amount or 0),
        start_date=start_date,
        end_date=end_date,
    )


def apply_quote(candidate: Any, quote: PricingQuote) -> Any:
    """Write the quoted amount and window onto the candidate being edited.

    A deposit the user already entered is kept.
    """
    candidate.total_amount = quote.amount
    if candidate.deposit_amount is None:
        candidate.deposit_amount = min(quote.deposit_amount, quote.amount)
    if quote.start_date is not None and quote.end_date is not None:
        candidate.start_date = quote.start_date
        candidate.end_date = quote.end_date
    return candidate
