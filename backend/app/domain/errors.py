from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .services import SlotDecision


class DomainError(Exception):
    """Base class for booking domain errors."""


class VenueNotFoundError(DomainError):
    pass


class BookingNotFoundError(DomainError):
    pass


class InvalidBookingDataError(DomainError):
    """A stored booking violates the slot vocabulary (e.g. half-day with no time of day)."""


class PricingUnavailableError(DomainError):
    pass


class PermissionDeniedError(DomainError):
    pass


class BookingConflictError(DomainError):
    """Raised at submit time when the conflict validator rejects a request."""

    def __init__(self, decision: "SlotDecision") -> None:
        super().__init__(decision.message or str(decision.reason))
        self.decision = decision


class StaleReadError(DomainError):
    """The write was refused because the data changed after the caller's read."""
