# backend/evbooking/services/booking_service.py
"""
Booking Service for the EV booking service.

Orchestrates booking lifecycle:
- Admission of new and changed windows under the per-(station, day) lock
- QR token issuing on create/update
- Operator transitions (approve, reject, finalize)
- Owner cancellation
- QR validation and single-use consumption at the station
- Owner and operator queues and counters

Admission guards always run in the same order so a refusal carries exactly
one reason. After each admitted write the station is recounted; a booking
that turns out to have overshot capacity (possible only when the distributed
lock was unavailable) is rolled to Rejected and reported as a race.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.enums import InadmissibleReason, QrFailure
from ..core.exceptions import (
    CapacityRaceException,
    ForbiddenException,
    InadmissibleBookingException,
    InvalidTransitionException,
    NotFoundException,
    QrValidationException,
    ValidationException,
)
from ..core.station_lock import station_day_lock
from ..core.timezone_utils import TimeWindow, ensure_utc
from ..core.ulid_helper import is_valid_ulid
from ..models.booking import Booking, BookingStatus, can_transition
from ..models.station import Station, StationSchedule
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import ActorPrincipal
from ..repositories.booking_repository import CAPACITY_RACE_REASON
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import TimeInput
from .base import BaseService, Clock
from .booking_rules import (
    BookingPolicy,
    QrPolicy,
    ensure_create_allowed,
    ensure_update_or_cancel_allowed,
    ensure_window_order,
    ensure_within_schedule,
    resolve_time_window,
)
from .qr_token_service import QrTokenService
from .qr_validator import QrValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerBookingCounts:
    pending: int
    approved_future: int


@dataclass(frozen=True)
class OperatorSummary:
    pending: int
    approved: int


class BookingService(BaseService):
    """
    Service layer for booking operations.

    All methods are synchronous; the API layer runs them in a worker thread.
    """

    def __init__(
        self,
        db: Session,
        policy: Optional[BookingPolicy] = None,
        qr_policy: Optional[QrPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock)
        self.policy = policy or BookingPolicy.from_settings()
        self.qr_policy = qr_policy or QrPolicy.from_settings()
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.station_repository = RepositoryFactory.create_station_repository(db)
        self.schedule_repository = RepositoryFactory.create_station_schedule_repository(db)
        self.token_service = QrTokenService(self.qr_policy, clock=self.now)
        self.validator = QrValidator(self.repository, self.qr_policy, clock=self.now)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_active_station(self, station_id: str) -> Station:
        station = self.station_repository.get_active(station_id)
        if station is None:
            raise NotFoundException(
                "Station not found or inactive",
                code="STATION_NOT_FOUND",
                details={"station_id": station_id},
            )
        return station

    def _get_or_404(self, booking_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id) if is_valid_ulid(booking_id) else None
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    def _ensure_owner(self, actor: ActorPrincipal, booking: Booking) -> None:
        if not actor.is_owner or actor.id.lower() != booking.owner_id.lower():
            raise ForbiddenException(
                "Only the booking owner can change this booking", code="NOT_BOOKING_OWNER"
            )

    def _ensure_operator(self, actor: ActorPrincipal, station_id: str) -> None:
        if not actor.can_operate(station_id):
            raise ForbiddenException(
                "Not assigned to this station",
                code="STATION_NOT_ASSIGNED",
                details={"station_id": station_id},
            )

    def _ensure_staff(self, actor: ActorPrincipal) -> None:
        if not actor.is_staff:
            raise ForbiddenException("Operator or back-office role required", code="STAFF_ONLY")

    def _check_admissible(
        self,
        station: Station,
        window: TimeWindow,
        owner_id: str,
        exclude_booking_id: Optional[str] = None,
    ) -> StationSchedule:
        """Schedule, capacity and owner-overlap guards. Caller holds the station lock."""
        schedule = self.schedule_repository.get_for_day(station.id, window.local_date)
        if schedule is None:
            raise InadmissibleBookingException(InadmissibleReason.NO_SCHEDULE)
        ensure_within_schedule(window, schedule)

        taken = self.repository.count_overlapping(
            station.id, window.start_utc, window.end_utc, exclude_booking_id=exclude_booking_id
        )
        if taken >= schedule.max_concurrent:
            raise InadmissibleBookingException(InadmissibleReason.FULL)

        if self.repository.owner_overlap_exists(
            owner_id, window.start_utc, window.end_utc, exclude_booking_id=exclude_booking_id
        ):
            raise InadmissibleBookingException(InadmissibleReason.OWNER_OVERLAP)
        return schedule

    def _reject_race_loser(self, booking: Booking, operation: str) -> None:
        with self.transaction():
            self.repository.transition_status(
                booking.id,
                booking.status_enum,
                BookingStatus.REJECTED,
                status_reason=CAPACITY_RACE_REASON,
                is_auth_active=False,
                updated_at=self.now(),
            )
        self.repository.refresh(booking)
        prometheus_metrics.record_admission(operation, CAPACITY_RACE_REASON)
        self.logger.warning(
            "Booking lost capacity race",
            extra={"booking_id": booking.id, "station_id": booking.station_id},
        )
        raise CapacityRaceException(booking.id)

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self, actor: ActorPrincipal, station_id: str, time_input: TimeInput
    ) -> Booking:
        """
        Create a Pending booking with a freshly minted QR token.

        Args:
            actor: Owner making the request
            station_id: Target station
            time_input: UTC or facility-local window

        Returns:
            The persisted booking

        Raises:
            ForbiddenException: Caller is not an owner
            NotFoundException: Station missing or inactive
            InadmissibleBookingException: First failing admission guard
            ServiceBusyException: Station lock not obtained in time
            CapacityRaceException: Lost a concurrent race after commit
        """
        if not actor.is_owner:
            raise ForbiddenException("Only EV owners can create bookings", code="OWNER_ONLY")

        now = self.now()
        station = self._require_active_station(station_id)
        facility_zone = station.resolve_time_zone(self.policy.default_time_zone)
        window = resolve_time_window(time_input, facility_zone)

        try:
            ensure_window_order(window)
            ensure_create_allowed(window.start_utc, now, self.policy)
            with station_day_lock(station.id, window.local_date):
                schedule = self._check_admissible(station, window, actor.id)
                with self.transaction():
                    booking = self.repository.create(
                        owner_id=actor.id,
                        station_id=station.id,
                        start_utc=window.start_utc,
                        end_utc=window.end_utc,
                        time_zone=window.zone_id,
                        status=BookingStatus.PENDING.value,
                        is_auth_active=False,
                        created_at=now,
                    )
                    self.token_service.apply(booking)
                    self.db.flush()
        except InadmissibleBookingException as e:
            prometheus_metrics.record_admission("create", e.reason.value)
            raise

        if self.repository.count_overlapping_admitted_before(booking) >= schedule.max_concurrent:
            self._reject_race_loser(booking, "create")

        prometheus_metrics.record_admission("create", "admitted")
        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            station_id=station.id,
            owner_id=actor.id,
        )
        return booking

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self, actor: ActorPrincipal, booking_id: str, time_input: TimeInput
    ) -> Booking:
        """
        Move a booking to a new window and re-issue its QR token.

        The cutoff is measured against the current start, before anything
        changes. The new window then passes the full admission check with the
        booking's own row excluded. Status and activation are kept.
        """
        now = self.now()
        booking = self._get_or_404(booking_id)
        self._ensure_owner(actor, booking)
        if booking.is_terminal:
            raise InvalidTransitionException(booking.status, "UPDATE")
        ensure_update_or_cancel_allowed(booking.start_utc, now, self.policy)

        station = self._require_active_station(booking.station_id)
        facility_zone = station.resolve_time_zone(self.policy.default_time_zone)
        window = resolve_time_window(time_input, facility_zone)

        try:
            ensure_window_order(window)
            ensure_create_allowed(window.start_utc, now, self.policy)
            with station_day_lock(station.id, window.local_date):
                schedule = self._check_admissible(
                    station, window, booking.owner_id, exclude_booking_id=booking.id
                )
                with self.transaction():
                    booking.start_utc = window.start_utc
                    booking.end_utc = window.end_utc
                    booking.time_zone = window.zone_id
                    booking.updated_at = now
                    self.token_service.apply(booking)
                    self.db.flush()
        except InadmissibleBookingException as e:
            prometheus_metrics.record_admission("update", e.reason.value)
            raise

        taken = self.repository.count_overlapping(
            station.id, booking.start_utc, booking.end_utc, exclude_booking_id=booking.id
        )
        if taken >= schedule.max_concurrent:
            self._reject_race_loser(booking, "update")

        prometheus_metrics.record_admission("update", "admitted")
        self.log_operation("update_booking", booking_id=booking.id, station_id=station.id)
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, actor: ActorPrincipal, booking_id: str) -> Booking:
        now = self.now()
        booking = self._get_or_404(booking_id)
        self._ensure_owner(actor, booking)
        if not can_transition(booking.status_enum, BookingStatus.CANCELLED):
            raise InvalidTransitionException(booking.status, BookingStatus.CANCELLED.value)
        ensure_update_or_cancel_allowed(booking.start_utc, now, self.policy)

        self._transition(
            booking,
            BookingStatus.CANCELLED,
            is_auth_active=False,
        )
        self.log_operation("cancel_booking", booking_id=booking.id)
        return booking

    # ------------------------------------------------------------------
    # Operator transitions
    # ------------------------------------------------------------------

    def _transition(self, booking: Booking, target: BookingStatus, **fields: Any) -> None:
        current = booking.status_enum
        if not can_transition(current, target):
            raise InvalidTransitionException(current.value, target.value)
        with self.transaction():
            changed = self.repository.transition_status(
                booking.id, current, target, updated_at=self.now(), **fields
            )
        self.repository.refresh(booking)
        if not changed:
            # Someone else moved it first
            raise InvalidTransitionException(booking.status, target.value)

    @BaseService.measure_operation("approve_booking")
    def approve_booking(self, actor: ActorPrincipal, booking_id: str) -> Booking:
        """Pending -> Approved. Activates the QR token issued at creation."""
        booking = self._get_or_404(booking_id)
        self._ensure_operator(actor, booking.station_id)
        self._transition(booking, BookingStatus.APPROVED, is_auth_active=True)
        self.log_operation("approve_booking", booking_id=booking.id, operator_id=actor.id)
        return booking

    @BaseService.measure_operation("reject_booking")
    def reject_booking(
        self, actor: ActorPrincipal, booking_id: str, reason: Optional[str] = None
    ) -> Booking:
        booking = self._get_or_404(booking_id)
        self._ensure_operator(actor, booking.station_id)
        self._transition(
            booking, BookingStatus.REJECTED, is_auth_active=False, status_reason=reason
        )
        self.log_operation("reject_booking", booking_id=booking.id, operator_id=actor.id)
        return booking

    @BaseService.measure_operation("finalize_booking")
    def finalize_booking(self, actor: ActorPrincipal, booking_id: str) -> Booking:
        booking = self._get_or_404(booking_id)
        self._ensure_operator(actor, booking.station_id)
        self._transition(booking, BookingStatus.COMPLETED, is_auth_active=False)
        self.log_operation("finalize_booking", booking_id=booking.id, operator_id=actor.id)
        return booking

    @BaseService.measure_operation("validate_qr")
    def validate_and_consume_qr(
        self, actor: ActorPrincipal, token: str, now: Optional[datetime] = None
    ) -> Booking:
        """
        Validate a scanned QR token and spend it.

        Only one of several concurrent scans of the same token can succeed;
        the rest see AlreadyUsed.

        Raises:
            ForbiddenException: Caller is not staff for the booking's station
            QrValidationException: Validation failed or token already spent
        """
        self._ensure_staff(actor)
        scanned_at = ensure_utc(now or self.now())
        booking = self.validator.validate(token, scanned_at)
        self._ensure_operator(actor, booking.station_id)

        with self.transaction():
            consumed = self.repository.mark_qr_validated(booking.id, booking.qr_jti, scanned_at)
        self.repository.refresh(booking)
        if not consumed:
            failure, message = self._lost_consume_failure(booking)
            prometheus_metrics.record_qr_validation(failure.value)
            raise QrValidationException(failure, message)

        prometheus_metrics.record_qr_validation("success")
        self.log_operation(
            "validate_qr",
            booking_id=booking.id,
            station_id=booking.station_id,
            operator_id=actor.id,
        )
        return booking

    @staticmethod
    def _lost_consume_failure(booking: Booking) -> Tuple[QrFailure, str]:
        """Explain why the conditional consume matched no row."""
        if booking.qr_validated_at is not None:
            return QrFailure.ALREADY_USED, "QR has already been used"
        if booking.status != BookingStatus.APPROVED.value:
            return QrFailure.NOT_APPROVED, "Booking is no longer approved"
        return QrFailure.INACTIVE, "QR authorization is not active"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_booking(self, actor: ActorPrincipal, booking_id: str) -> Booking:
        booking = self._get_or_404(booking_id)
        if actor.is_owner:
            self._ensure_owner(actor, booking)
        else:
            self._ensure_operator(actor, booking.station_id)
        return booking

    def list_for_owner(self, actor: ActorPrincipal, owner_id: str) -> List[Booking]:
        """All bookings of an owner, newest start first. Owners may only list their own."""
        if actor.is_owner and actor.id.lower() != owner_id.lower():
            raise ForbiddenException(
                "Owners can only list their own bookings", code="NOT_BOOKING_OWNER"
            )
        return self.repository.list_for_owner(owner_id)

    def list_pending(
        self,
        actor: ActorPrincipal,
        station_id: Optional[str] = None,
        from_utc: Optional[datetime] = None,
        to_utc: Optional[datetime] = None,
    ) -> List[Booking]:
        """Operator approval queue, oldest start first."""
        self._ensure_staff(actor)
        if from_utc and to_utc and to_utc < from_utc:
            raise ValidationException(
                "'to' must be on or after 'from'", code="INVALID_DATE_RANGE"
            )
        if station_id:
            self._ensure_operator(actor, station_id)
        bookings = self.repository.list_pending(
            station_id=station_id,
            from_utc=ensure_utc(from_utc) if from_utc else None,
            to_utc=ensure_utc(to_utc) if to_utc else None,
        )
        return [b for b in bookings if actor.can_operate(b.station_id)]

    def list_my_pending(self, actor: ActorPrincipal) -> List[Booking]:
        return self.repository.list_pending(owner_id=actor.id)

    def list_by_status(self, actor: ActorPrincipal, status: BookingStatus) -> List[Booking]:
        self._ensure_staff(actor)
        bookings = self.repository.list_by_status(status)
        return [b for b in bookings if actor.can_operate(b.station_id)]

    def owner_counts(self, actor: ActorPrincipal) -> OwnerBookingCounts:
        return OwnerBookingCounts(
            pending=self.repository.count_by_status(BookingStatus.PENDING, owner_id=actor.id),
            approved_future=self.repository.count_by_status(
                BookingStatus.APPROVED, owner_id=actor.id, starting_from=self.now()
            ),
        )

    def operator_summary(self, actor: ActorPrincipal) -> OperatorSummary:
        self._ensure_staff(actor)
        return OperatorSummary(
            pending=self.repository.count_by_status(BookingStatus.PENDING),
            approved=self.repository.count_by_status(BookingStatus.APPROVED),
        )
