# backend/evbooking/repositories/booking_repository.py
"""
Booking Repository for the EV booking service.

Implements the booking store contract the rules engine depends on:
- point lookup by id
- overlap counting with half-open interval semantics
- owner overlap detection
- atomic conditional updates (single-use QR marking, guarded status changes)
- operator/owner listing and counting queries

Overlap test everywhere: ``booking.start < window_end AND booking.end > window_start``.
"""

from datetime import datetime
import logging
from typing import Any, Iterable, List, Optional, cast

from sqlalchemy import and_, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..models.booking import ACTIVE_STATUSES, Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

# Set on bookings rolled back after losing a concurrent admission race
CAPACITY_RACE_REASON = "capacity_race"


def _status_values(statuses: Iterable[BookingStatus]) -> List[str]:
    return sorted(BookingStatus(s).value for s in statuses)


def _owner_matches(owner_id: str) -> Any:
    return func.lower(Booking.owner_id) == owner_id.lower()


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Overlap queries
    # ------------------------------------------------------------------

    def _overlapping(self, query: Query, start_utc: datetime, end_utc: datetime) -> Query:
        return query.filter(Booking.start_utc < end_utc, Booking.end_utc > start_utc)

    def count_overlapping(
        self,
        station_id: str,
        start_utc: datetime,
        end_utc: datetime,
        statuses: Iterable[BookingStatus] = ACTIVE_STATUSES,
        exclude_booking_id: Optional[str] = None,
    ) -> int:
        """
        Count bookings at a station whose window intersects ``[start_utc, end_utc)``.

        Args:
            station_id: Station to check
            start_utc: Window start (inclusive)
            end_utc: Window end (exclusive)
            statuses: Statuses that hold capacity (Pending/Approved by default)
            exclude_booking_id: Booking to leave out, used when re-admitting an update

        Returns:
            Number of overlapping bookings
        """
        query = self.db.query(func.count(Booking.id)).filter(
            Booking.station_id == station_id,
            Booking.status.in_(_status_values(statuses)),
        )
        query = self._overlapping(query, start_utc, end_utc)
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return int(self._execute_scalar(query) or 0)

    def count_overlapping_admitted_before(self, booking: Booking) -> int:
        """
        Count active bookings overlapping ``booking`` that were admitted ahead of it.

        Ordering is (created_at, id); used after commit to decide which writer
        lost a concurrent race for the last unit of capacity.
        """
        query = self.db.query(func.count(Booking.id)).filter(
            Booking.station_id == booking.station_id,
            Booking.status.in_(_status_values(ACTIVE_STATUSES)),
            Booking.id != booking.id,
            or_(
                Booking.created_at < booking.created_at,
                and_(Booking.created_at == booking.created_at, Booking.id < booking.id),
            ),
        )
        query = self._overlapping(query, booking.start_utc, booking.end_utc)
        return int(self._execute_scalar(query) or 0)

    def owner_overlap_exists(
        self,
        owner_id: str,
        start_utc: datetime,
        end_utc: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Check whether the owner already holds a non-cancelled booking intersecting the window.

        Rejected bookings still count, except those rolled back by a capacity race.
        Owner ids compare case-insensitively.
        """
        query = self.db.query(Booking.id).filter(
            _owner_matches(owner_id),
            Booking.status != BookingStatus.CANCELLED.value,
            or_(
                Booking.status != BookingStatus.REJECTED.value,
                Booking.status_reason.is_(None),
                Booking.status_reason != CAPACITY_RACE_REASON,
            ),
        )
        query = self._overlapping(query, start_utc, end_utc)
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        try:
            return query.first() is not None
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking owner overlap for {owner_id}: {str(e)}")
            raise RepositoryException(f"Failed to check owner overlap: {str(e)}")

    def get_active_for_station_between(
        self, station_id: str, start_utc: datetime, end_utc: datetime
    ) -> List[Booking]:
        """Pending/Approved bookings at a station intersecting a range, ordered by start."""
        query = self._build_query().filter(
            Booking.station_id == station_id,
            Booking.status.in_(_status_values(ACTIVE_STATUSES)),
        )
        query = self._overlapping(query, start_utc, end_utc).order_by(Booking.start_utc)
        return cast(List[Booking], self._execute_query(query))

    # ------------------------------------------------------------------
    # Conditional updates
    # ------------------------------------------------------------------

    def _conditional_update(self, *criteria: Any, values: dict) -> bool:
        try:
            result = self.db.execute(
                update(Booking)
                .where(*criteria)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.db.flush()
            return bool(result.rowcount)
        except SQLAlchemyError as e:
            self.logger.error(f"Conditional booking update failed: {str(e)}")
            raise RepositoryException(f"Failed to update booking: {str(e)}")

    def mark_qr_validated(self, booking_id: str, jti: str, validated_at: datetime) -> bool:
        """
        Spend a booking's QR authorization.

        Succeeds only while the booking is Approved and active, ``qr_validated_at``
        is still NULL and the stored jti matches, so exactly one of several
        concurrent scans wins and a booking finalized mid-scan is never marked.

        Returns:
            True if this call consumed the token, False otherwise
        """
        return self._conditional_update(
            Booking.id == booking_id,
            Booking.qr_jti == jti,
            Booking.status == BookingStatus.APPROVED.value,
            Booking.is_auth_active.is_(True),
            Booking.qr_validated_at.is_(None),
            values={
                "qr_validated_at": validated_at,
                "is_auth_active": False,
                "updated_at": validated_at,
            },
        )

    def transition_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        target: BookingStatus,
        **fields: Any,
    ) -> bool:
        """Move a booking from ``expected`` to ``target`` only if it is still ``expected``."""
        values = {"status": target.value, **fields}
        return self._conditional_update(
            Booking.id == booking_id,
            Booking.status == expected.value,
            values=values,
        )

    # ------------------------------------------------------------------
    # Listing / counting
    # ------------------------------------------------------------------

    def list_for_owner(self, owner_id: str) -> List[Booking]:
        query = (
            self._build_query()
            .filter(_owner_matches(owner_id))
            .order_by(Booking.start_utc.desc())
        )
        return cast(List[Booking], self._execute_query(query))

    def list_pending(
        self,
        station_id: Optional[str] = None,
        from_utc: Optional[datetime] = None,
        to_utc: Optional[datetime] = None,
        owner_id: Optional[str] = None,
    ) -> List[Booking]:
        """Pending queue ordered oldest start first, optionally filtered."""
        query = self._build_query().filter(Booking.status == BookingStatus.PENDING.value)
        if station_id:
            query = query.filter(Booking.station_id == station_id)
        if owner_id:
            query = query.filter(_owner_matches(owner_id))
        if from_utc:
            query = query.filter(Booking.start_utc >= from_utc)
        if to_utc:
            query = query.filter(Booking.start_utc <= to_utc)
        return cast(List[Booking], self._execute_query(query.order_by(Booking.start_utc)))

    def list_by_status(self, status: BookingStatus) -> List[Booking]:
        """All bookings in a status, newest start first."""
        query = (
            self._build_query()
            .filter(Booking.status == status.value)
            .order_by(Booking.start_utc.desc())
        )
        return cast(List[Booking], self._execute_query(query))

    def count_by_status(
        self,
        status: BookingStatus,
        owner_id: Optional[str] = None,
        starting_from: Optional[datetime] = None,
    ) -> int:
        query = self.db.query(func.count(Booking.id)).filter(Booking.status == status.value)
        if owner_id:
            query = query.filter(_owner_matches(owner_id))
        if starting_from:
            query = query.filter(Booking.start_utc >= starting_from)
        return int(self._execute_scalar(query) or 0)
