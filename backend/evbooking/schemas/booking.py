# backend/evbooking/schemas/booking.py
"""
Booking schemas for the EV booking service.

A booking window arrives either as UTC instants or as facility-local wall
clock times. The two shapes form a tagged union on ``kind`` and are resolved
to one canonical UTC window at the service boundary; nothing downstream
guesses which representation it was given.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, field_validator

from ..core.exceptions import ConfigurationError
from ..core.timezone_utils import ensure_utc, get_zone, to_local
from ..models.booking import Booking
from ._strict_base import OrmResponseModel, StrictModel, StrictRequestModel


class UtcTimeInput(StrictRequestModel):
    """Window given as UTC instants. Naive values are read as UTC."""

    kind: Literal["utc"] = "utc"
    start: datetime = Field(..., description="Session start (UTC)")
    end: datetime = Field(..., description="Session end (UTC)")

    @field_validator("start", "end")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class LocalTimeInput(StrictRequestModel):
    """Window given as local wall-clock times."""

    kind: Literal["local"] = "local"
    start_local: datetime = Field(..., description="Session start, local wall clock")
    end_local: datetime = Field(..., description="Session end, local wall clock")
    time_zone: Optional[str] = Field(
        None, description="IANA zone of the wall-clock times; defaults to the station's zone"
    )

    @field_validator("start_local", "end_local")
    @classmethod
    def _strip_offset(cls, value: datetime) -> datetime:
        return value.replace(tzinfo=None)

    @field_validator("time_zone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        try:
            get_zone(value.strip())
        except ConfigurationError as e:
            raise ValueError(e.message) from None
        return value.strip()


TimeInput = Annotated[Union[UtcTimeInput, LocalTimeInput], Field(discriminator="kind")]


class BookingCreate(StrictRequestModel):
    station_id: str = Field(..., min_length=1, max_length=26)
    time: TimeInput


class BookingUpdate(StrictRequestModel):
    """Move an existing booking. Station and owner never change."""

    time: TimeInput


class BookingReject(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def _blank_reason_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value.strip() if value else value


class QrValidateRequest(StrictRequestModel):
    # Blank tokens are accepted here and reported as Malformed by the validator
    token: str = Field("", max_length=4096)


class BookingResponse(OrmResponseModel):
    """Booking with both UTC instants and the facility-local rendering."""

    id: str
    owner_id: str
    station_id: str
    status: str
    status_reason: Optional[str] = None
    start_utc: datetime
    end_utc: datetime
    start_local: datetime
    end_local: datetime
    time_zone: str
    is_auth_active: bool
    qr_token: Optional[str] = None
    qr_expires_at: Optional[datetime] = None
    qr_validated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Booking, include_token: bool = False) -> "BookingResponse":
        return cls(
            id=booking.id,
            owner_id=booking.owner_id,
            station_id=booking.station_id,
            status=booking.status,
            status_reason=booking.status_reason,
            start_utc=ensure_utc(booking.start_utc),
            end_utc=ensure_utc(booking.end_utc),
            start_local=to_local(booking.start_utc, booking.time_zone),
            end_local=to_local(booking.end_utc, booking.time_zone),
            time_zone=booking.time_zone,
            is_auth_active=booking.is_auth_active,
            qr_token=booking.qr_token if include_token else None,
            qr_expires_at=booking.qr_expires_at,
            qr_validated_at=booking.qr_validated_at,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class QrValidateResponse(StrictModel):
    ok: bool = True
    booking_id: str
    owner_id: str
    station_id: str
    start_utc: datetime
    end_utc: datetime
    start_local: datetime
    end_local: datetime
    time_zone: str
    validated_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "QrValidateResponse":
        assert booking.qr_validated_at is not None
        return cls(
            booking_id=booking.id,
            owner_id=booking.owner_id,
            station_id=booking.station_id,
            start_utc=ensure_utc(booking.start_utc),
            end_utc=ensure_utc(booking.end_utc),
            start_local=to_local(booking.start_utc, booking.time_zone),
            end_local=to_local(booking.end_utc, booking.time_zone),
            time_zone=booking.time_zone,
            validated_at=ensure_utc(booking.qr_validated_at),
        )


class OwnerCountsResponse(StrictModel):
    pending: int
    approved_future: int


class OperatorSummaryResponse(StrictModel):
    pending: int
    approved: int
