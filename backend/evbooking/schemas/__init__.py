# backend/evbooking/schemas/__init__.py
"""
Pydantic schemas for the EV booking service.

Requests forbid unknown fields. Booking windows use the ``TimeInput`` tagged
union so UTC and facility-local inputs never get mixed up.
"""

from .booking import (
    BookingCreate,
    BookingReject,
    BookingResponse,
    BookingUpdate,
    LocalTimeInput,
    OperatorSummaryResponse,
    OwnerCountsResponse,
    QrValidateRequest,
    QrValidateResponse,
    TimeInput,
    UtcTimeInput,
)
from .station import ScheduleResponse, ScheduleWrite, SlotListResponse, SlotResponse

__all__ = [
    # Booking
    "BookingCreate",
    "BookingReject",
    "BookingResponse",
    "BookingUpdate",
    "LocalTimeInput",
    "OperatorSummaryResponse",
    "OwnerCountsResponse",
    "QrValidateRequest",
    "QrValidateResponse",
    "TimeInput",
    "UtcTimeInput",
    # Stations
    "ScheduleResponse",
    "ScheduleWrite",
    "SlotListResponse",
    "SlotResponse",
]
