# backend/evbooking/models/booking.py
"""
Booking model for the EV booking service.

A booking reserves a charging window at one station for one owner. Windows
are stored as UTC instants; the facility zone the request was resolved in is
kept alongside so local renderings and grace windows need no lookup.

The QR token minted at creation time lives on the row. Only the current
``qr_jti`` is stored: re-issuing overwrites it, which invalidates any earlier
code. ``qr_validated_at`` is written once by a conditional update and marks
the authorization as spent.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, String, Text
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Awaiting operator approval
    APPROVED = "APPROVED"  # QR token active
    REJECTED = "REJECTED"  # Operator refused, or lost a capacity race
    CANCELLED = "CANCELLED"  # Owner cancelled
    COMPLETED = "COMPLETED"  # Session finalized by operator


# Statuses that hold station capacity
ACTIVE_STATUSES: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.APPROVED}
)

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.APPROVED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Check the booking state machine."""
    return target in ALLOWED_TRANSITIONS[BookingStatus(current)]


class Booking(Base):
    """Charging session reservation with its QR authorization state."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    owner_id = Column(String(64), nullable=False)
    station_id = Column(String(26), ForeignKey("stations.id"), nullable=False)

    start_utc = Column(UTCDateTime, nullable=False)
    end_utc = Column(UTCDateTime, nullable=False)
    time_zone = Column(String(64), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    status_reason = Column(Text, nullable=True)
    is_auth_active = Column(Boolean, nullable=False, default=False)

    # QR tracking
    qr_token = Column(Text, nullable=True)
    qr_jti = Column(String(64), nullable=True)
    qr_issued_at = Column(UTCDateTime, nullable=True)
    qr_expires_at = Column(UTCDateTime, nullable=True)
    qr_validated_at = Column(UTCDateTime, nullable=True)

    created_at = Column(
        UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        UTCDateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint("end_utc > start_utc", name="check_booking_window_order"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', 'COMPLETED')",
            name="ck_bookings_status",
        ),
        Index("ix_bookings_owner_start", "owner_id", "start_utc"),
        Index("ix_bookings_station_start", "station_id", "start_utc"),
        Index("ix_bookings_status_start", "status", "start_utc"),
        Index("ix_bookings_qr_jti", "qr_jti"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value
        if self.is_auth_active is None:
            self.is_auth_active = False
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: owner={self.owner_id}, station={self.station_id}, "
            f"window={self.start_utc}-{self.end_utc}, status={self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status_enum in TERMINAL_STATUSES

    @property
    def is_consumed(self) -> bool:
        return self.qr_validated_at is not None

    def overlaps(self, start_utc: datetime, end_utc: datetime) -> bool:
        """Half-open interval overlap with ``[start_utc, end_utc)``."""
        return self.start_utc < end_utc and self.end_utc > start_utc
