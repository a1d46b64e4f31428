# backend/evbooking/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    GET /pending - Operator approval queue
    GET /approved - Approved bookings (operators)
    GET /completed - Completed bookings (operators)
    GET /my/pending - Caller's pending bookings (owners)
    GET /my/counts - Caller's pending / upcoming approved counts (owners)
    GET /op/summary - Pending / approved totals (operators)
    POST /scan/validate - Validate and spend a QR token (operators)
    GET / - List an owner's bookings
    POST / - Create a booking (owners)
    GET /{booking_id} - Booking details
    PUT /{booking_id} - Move a booking to a new window (owners)
    DELETE /{booking_id} - Cancel a booking (owners)
    POST /{booking_id}/approve - Approve a pending booking (operators)
    POST /{booking_id}/reject - Reject a pending booking (operators)
    POST /{booking_id}/finalize - Complete an approved booking (operators)
"""

import asyncio
from datetime import datetime
import logging
from typing import Any, List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from ...api.dependencies import (
    get_booking_service,
    get_current_actor,
    require_owner,
    require_staff,
)
from ...core.exceptions import DomainException
from ...models.booking import BookingStatus
from ...principal import ActorPrincipal
from ...schemas.booking import (
    BookingCreate,
    BookingReject,
    BookingResponse,
    BookingUpdate,
    OperatorSummaryResponse,
    OwnerCountsResponse,
    QrValidateRequest,
    QrValidateResponse,
)
from ...services.booking_service import BookingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _booking_id_path() -> Any:
    return Path(
        ...,
        description="Booking ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    )


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.get("/pending", response_model=List[BookingResponse])
async def list_pending_bookings(
    station_id: Optional[str] = Query(None, description="Only this station"),
    from_utc: Optional[datetime] = Query(None, description="Earliest start (UTC)"),
    to_utc: Optional[datetime] = Query(None, description="Latest start (UTC)"),
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    """Pending bookings awaiting approval, oldest start first."""
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_pending, actor, station_id, from_utc, to_utc
        )
        return [BookingResponse.from_booking(b) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/approved", response_model=List[BookingResponse])
async def list_approved_bookings(
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_by_status, actor, BookingStatus.APPROVED
        )
        return [BookingResponse.from_booking(b) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/completed", response_model=List[BookingResponse])
async def list_completed_bookings(
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_by_status, actor, BookingStatus.COMPLETED
        )
        return [BookingResponse.from_booking(b) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/my/pending", response_model=List[BookingResponse])
async def list_my_pending_bookings(
    actor: ActorPrincipal = Depends(require_owner),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        bookings = await asyncio.to_thread(booking_service.list_my_pending, actor)
        return [BookingResponse.from_booking(b, include_token=True) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/my/counts", response_model=OwnerCountsResponse)
async def get_my_booking_counts(
    actor: ActorPrincipal = Depends(require_owner),
    booking_service: BookingService = Depends(get_booking_service),
) -> OwnerCountsResponse:
    """Dashboard counters: pending bookings and approved bookings still to come."""
    try:
        counts = await asyncio.to_thread(booking_service.owner_counts, actor)
        return OwnerCountsResponse(pending=counts.pending, approved_future=counts.approved_future)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/op/summary", response_model=OperatorSummaryResponse)
async def get_operator_summary(
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> OperatorSummaryResponse:
    try:
        summary = await asyncio.to_thread(booking_service.operator_summary, actor)
        return OperatorSummaryResponse(pending=summary.pending, approved=summary.approved)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/scan/validate", response_model=QrValidateResponse)
async def validate_qr_token(
    payload: QrValidateRequest = Body(...),
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> QrValidateResponse:
    """
    Validate a scanned QR token and mark it used.

    A token validates at most once; later scans get ``AlreadyUsed``.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.validate_and_consume_qr, actor, payload.token
        )
        return QrValidateResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[BookingResponse])
async def list_owner_bookings(
    owner_id: str = Query(..., min_length=1, description="Owner whose bookings to list"),
    actor: ActorPrincipal = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    """All bookings of an owner, newest start first."""
    try:
        bookings = await asyncio.to_thread(booking_service.list_for_owner, actor, owner_id)
        return [BookingResponse.from_booking(b, include_token=actor.is_owner) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate = Body(...),
    actor: ActorPrincipal = Depends(require_owner),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Create a booking for the calling owner.

    The booking starts Pending with its QR token already minted; the token
    becomes usable once an operator approves it.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking, actor, payload.station_id, payload.time
        )
        return BookingResponse.from_booking(booking, include_token=True)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Routes with a booking id
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = _booking_id_path(),
    actor: ActorPrincipal = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, actor, booking_id)
        return BookingResponse.from_booking(booking, include_token=actor.is_owner)
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str = _booking_id_path(),
    payload: BookingUpdate = Body(...),
    actor: ActorPrincipal = Depends(require_owner),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Move a booking; the previous QR token stops validating."""
    try:
        booking = await asyncio.to_thread(
            booking_service.update_booking, actor, booking_id, payload.time
        )
        return BookingResponse.from_booking(booking, include_token=True)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{booking_id}", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str = _booking_id_path(),
    actor: ActorPrincipal = Depends(require_owner),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.cancel_booking, actor, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: str = _booking_id_path(),
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.approve_booking, actor, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str = _booking_id_path(),
    payload: Optional[BookingReject] = Body(None),
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.reject_booking,
            actor,
            booking_id,
            payload.reason if payload else None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/finalize", response_model=BookingResponse)
async def finalize_booking(
    booking_id: str = _booking_id_path(),
    actor: ActorPrincipal = Depends(require_staff),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Close an approved session after charging ends."""
    try:
        booking = await asyncio.to_thread(booking_service.finalize_booking, actor, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)
