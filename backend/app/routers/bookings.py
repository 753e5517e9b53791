import re
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Path, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_session, require_permission
from ..domain.access import ActorContext, Permission
from ..domain.errors import (
    BookingConflictError,
    BookingNotFoundError,
    PricingUnavailableError,
    StaleReadError,
    VenueNotFoundError,
)
from ..domain.services import ConflictReason, SlotDecision, SlotRequest, stale_read_decision
from ..infrastructure.repositories import (
    SqlAlchemyBookingRepository,
    SqlAlchemyUnavailableDateRepository,
    SqlAlchemyVenueRepository,
)
from ..schemas import BookingCancel, BookingCheck, BookingCreate, BookingRead, BookingUpdate, SlotDecisionRead
from ..usecases import bookings as booking_usecase
from ..utils.audit_log import emit_audit_log
from ..utils.time import venue_today

PAGE = "bookings"

router = APIRouter(prefix="/bookings", tags=["bookings"])

_INVALID_REASONS = {ConflictReason.MISSING_TIME_OF_DAY, ConflictReason.PAST_DATE}
_ETAG_RE = re.compile(r'^(?:W/)?"?(\d+)"?$')


def _conflict_http(decision: SlotDecision) -> HTTPException:
    code = status.HTTP_422_UNPROCESSABLE_ENTITY if decision.reason in _INVALID_REASONS else status.HTTP_409_CONFLICT
    return HTTPException(status_code=code, detail=SlotDecisionRead.from_decision(decision).model_dump(mode="json"))


def _extract_version(if_match: Optional[str], payload: Optional[BookingCancel]) -> int:
    """If-Match wins over the body version; both must be positive integers."""
    if if_match is not None:
        match = _ETAG_RE.match(if_match.strip())
        if match is None or int(match.group(1)) < 1:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid If-Match header")
        return int(match.group(1))
    version = getattr(payload, "version", None)
    if version is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="version required (If-Match or body)")
    if version < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="version must be >= 1")
    return version


def _audit(**kwargs: object) -> None:
    try:
        emit_audit_log(**kwargs)  # type: ignore[arg-type]
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")


def _rejected(actor: ActorContext, request: SlotRequest, decision: SlotDecision, booking_id: Optional[int] = None) -> HTTPException:
    _audit(
        action="booking.rejected",
        actor_id=actor.user_id,
        booking_id=booking_id,
        venue_id=request.venue_id,
        day=request.day,
        slot=decision.slot,
        reason=decision.reason,
    )
    return _conflict_http(decision)


@router.post("/check", response_model=SlotDecisionRead)
async def check_booking(
    payload: BookingCheck,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission(PAGE, Permission.READ)),
) -> SlotDecisionRead:
    booking_repo = SqlAlchemyBookingRepository(session)
    unavailable_repo = SqlAlchemyUnavailableDateRepository(session)
    decision = await booking_usecase.check_booking(
        booking_repo,
        unavailable_repo,
        request=payload.to_slot_request(),
        today=venue_today(),
        slot_capacity=get_settings().half_day_slot_capacity,
    )
    return SlotDecisionRead.from_decision(decision)


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission(PAGE, Permission.WRITE)),
) -> BookingRead:
    settings = get_settings()
    venue_repo = SqlAlchemyVenueRepository(session)
    booking_repo = SqlAlchemyBookingRepository(session)
    unavailable_repo = SqlAlchemyUnavailableDateRepository(session)
    request = payload.to_slot_request()
    try:
        async with session.begin():
            booking = await booking_usecase.create_booking(
                venue_repo,
                booking_repo,
                unavailable_repo,
                payload=payload,
                windows=settings.slot_windows(),
                today=venue_today(),
                slot_capacity=settings.half_day_slot_capacity,
            )
    except BookingConflictError as exc:
        raise _rejected(actor, request, exc.decision)
    except IntegrityError:
        raise _rejected(actor, request, booking_usecase.stale_read_error(request).decision)
    except VenueNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="venue not found")
    except PricingUnavailableError:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="venue has no price for this booking type")

    _audit(
        action="booking.created",
        actor_id=actor.user_id,
        booking_id=booking.id,
        venue_id=booking.venue_id,
        day=request.day,
        slot=request.slot,
        status_to=booking.status,
        version=booking.version,
    )
    return BookingRead.from_db(booking=booking)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission(PAGE, Permission.READ)),
) -> BookingRead:
    booking_repo = SqlAlchemyBookingRepository(session)
    booking = await booking_usecase.get_booking(booking_repo, booking_id=booking_id)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    return BookingRead.from_db(booking=booking)


@router.put("/{booking_id}", response_model=BookingRead)
async def update_booking(
    payload: BookingUpdate,
    booking_id: int = Path(..., ge=1),
    if_match: Optional[str] = Header(default=None, alias="If-Match"),
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission(PAGE, Permission.EDIT)),
) -> BookingRead:
    settings = get_settings()
    version = _extract_version(if_match, payload)
    venue_repo = SqlAlchemyVenueRepository(session)
    booking_repo = SqlAlchemyBookingRepository(session)
    unavailable_repo = SqlAlchemyUnavailableDateRepository(session)
    request = payload.to_slot_request(exclude_booking_id=booking_id)
    try:
        async with session.begin():
            booking, status_from = await booking_usecase.update_booking(
                venue_repo,
                booking_repo,
                unavailable_repo,
                booking_id=booking_id,
                payload=payload,
                version=version,
                windows=settings.slot_windows(),
                today=venue_today(),
                slot_capacity=settings.half_day_slot_capacity,
            )
    except BookingConflictError as exc:
        raise _rejected(actor, request, exc.decision, booking_id)
    except (StaleReadError, IntegrityError):
        raise _rejected(actor, request, booking_usecase.stale_read_error(request).decision, booking_id)
    except BookingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    except VenueNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="venue not found")
    except PricingUnavailableError:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="venue has no price for this booking type")

    _audit(
        action="booking.updated",
        actor_id=actor.user_id,
        booking_id=booking.id,
        venue_id=booking.venue_id,
        day=request.day,
        slot=request.slot,
        status_from=status_from,
        status_to=booking.status,
        version=booking.version,
    )
    return BookingRead.from_db(booking=booking)


@router.post("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: int = Path(..., ge=1),
    payload: Optional[BookingCancel] = None,
    if_match: Optional[str] = Header(default=None, alias="If-Match"),
    session: AsyncSession = Depends(get_session),
    actor: ActorContext = Depends(require_permission(PAGE, Permission.DELETE)),
) -> BookingRead:
    version = _extract_version(if_match, payload)
    booking_repo = SqlAlchemyBookingRepository(session)
    try:
        async with session.begin():
            booking, status_from = await booking_usecase.cancel_booking(
                booking_repo,
                booking_id=booking_id,
                version=version,
            )
    except BookingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    except StaleReadError:
        raise _conflict_http(stale_read_decision())

    if status_from != booking.status:
        _audit(
            action="booking.cancelled",
            actor_id=actor.user_id,
            booking_id=booking.id,
            venue_id=booking.venue_id,
            day=booking.start_date.date(),
            status_from=status_from,
            status_to=booking.status,
            version=booking.version,
        )
    return BookingRead.from_db(booking=booking)
