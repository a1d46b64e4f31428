from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from conftest import NOW, OTHER_STATION_ID, STATION_ID, TODAY, TOMORROW, local
import pytest

from evbooking.core.enums import ActorRole, InadmissibleReason, QrFailure
from evbooking.core.exceptions import (
    CapacityRaceException,
    ForbiddenException,
    InadmissibleBookingException,
    InvalidTransitionException,
    NotFoundException,
    QrValidationException,
    TooLateToModifyException,
    ValidationException,
)
from evbooking.models.booking import Booking, BookingStatus
from evbooking.principal import ActorPrincipal
from evbooking.schemas.booking import LocalTimeInput, UtcTimeInput
from evbooking.services.booking_service import CAPACITY_RACE_REASON, BookingService


def _local_window(day=TOMORROW, start_hour=9, end_hour=10, start_minute=0, end_minute=0):
    return LocalTimeInput(
        start_local=local(day, start_hour, start_minute),
        end_local=local(day, end_hour, end_minute),
    )


class TestCreateBooking:
    def test_local_input_creates_pending_booking(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())

        assert booking.status == BookingStatus.PENDING.value
        assert booking.is_auth_active is False
        assert booking.owner_id == owner.id
        assert booking.start_utc == datetime(2030, 3, 11, 3, 30, tzinfo=timezone.utc)
        assert booking.end_utc == datetime(2030, 3, 11, 4, 30, tzinfo=timezone.utc)
        assert booking.time_zone == "Asia/Colombo"
        assert booking.qr_jti and booking.qr_token
        assert booking.created_at == NOW

    def test_utc_input_creates_booking(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(
            owner,
            STATION_ID,
            UtcTimeInput(
                start=datetime(2030, 3, 10, 10, 0, tzinfo=timezone.utc),
                end=datetime(2030, 3, 10, 11, 0, tzinfo=timezone.utc),
            ),
        )
        assert booking.start_utc == datetime(2030, 3, 10, 10, 0, tzinfo=timezone.utc)

    def test_station_zone_overrides_default(
        self, make_station, make_schedule, booking_service, owner
    ) -> None:
        make_station(station_id="LDN", time_zone="Europe/London")
        make_schedule(station_id="LDN", schedule_date=TOMORROW)
        booking = booking_service.create_booking(owner, "LDN", _local_window())
        assert booking.time_zone == "Europe/London"
        assert booking.start_utc == datetime(2030, 3, 11, 9, 0, tzinfo=timezone.utc)

    def test_staff_cannot_create(self, station, booking_service, operator) -> None:
        with pytest.raises(ForbiddenException):
            booking_service.create_booking(operator, STATION_ID, _local_window())

    def test_unknown_or_inactive_station(self, make_station, booking_service, owner) -> None:
        make_station(station_id="OFF", is_active=False)
        for station_id in ("OFF", "MISSING"):
            with pytest.raises(NotFoundException):
                booking_service.create_booking(owner, station_id, _local_window())

    @pytest.mark.parametrize(
        "time_input,reason",
        [
            (_local_window(TOMORROW, 10, 9), InadmissibleReason.INVALID_WINDOW),
            (_local_window(TODAY, 5, 6), InadmissibleReason.PAST_START),
            (
                _local_window(TODAY + timedelta(days=8), 9, 10),
                InadmissibleReason.HORIZON_EXCEEDED,
            ),
            (
                _local_window(TODAY + timedelta(days=3), 9, 10),
                InadmissibleReason.NO_SCHEDULE,
            ),
            (_local_window(TOMORROW, 5, 7), InadmissibleReason.OUTSIDE_SCHEDULE),
            (_local_window(TOMORROW, 21, 23), InadmissibleReason.OUTSIDE_SCHEDULE),
        ],
    )
    def test_first_failing_guard_is_reported(
        self, station, booking_service, owner, time_input, reason
    ) -> None:
        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(owner, STATION_ID, time_input)
        assert exc.value.reason == reason
        assert exc.value.details == {"reason": reason.value}

    def test_past_start_reported_before_missing_schedule(
        self, make_station, booking_service, owner
    ) -> None:
        make_station()
        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(owner, STATION_ID, _local_window(TODAY, 5, 6))
        assert exc.value.reason == InadmissibleReason.PAST_START

    def test_full_station(self, station, booking_service, owner, other_owner) -> None:
        third = ActorPrincipal(actor_id="200011112222", role=ActorRole.OWNER)
        booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.create_booking(other_owner, STATION_ID, _local_window(start_minute=30))

        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(third, STATION_ID, _local_window(start_minute=15))
        assert exc.value.reason == InadmissibleReason.FULL
        assert exc.value.status_code == 409

    def test_adjacent_windows_do_not_overlap(
        self, make_station, make_schedule, booking_service, owner, other_owner
    ) -> None:
        make_station()
        make_schedule(schedule_date=TOMORROW, max_concurrent=1)
        booking_service.create_booking(owner, STATION_ID, _local_window(start_hour=9, end_hour=10))
        booking = booking_service.create_booking(
            other_owner, STATION_ID, _local_window(start_hour=10, end_hour=11)
        )
        assert booking.status == BookingStatus.PENDING.value

    def test_owner_overlap(self, station, booking_service, owner) -> None:
        booking_service.create_booking(owner, STATION_ID, _local_window())
        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(
                owner, STATION_ID, _local_window(start_hour=9, start_minute=30, end_hour=11)
            )
        assert exc.value.reason == InadmissibleReason.OWNER_OVERLAP

    def test_owner_overlap_spans_stations(
        self, station, make_station, make_schedule, booking_service, owner
    ) -> None:
        make_station(station_id=OTHER_STATION_ID)
        make_schedule(station_id=OTHER_STATION_ID, schedule_date=TOMORROW)
        booking_service.create_booking(owner, STATION_ID, _local_window())
        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(owner, OTHER_STATION_ID, _local_window())
        assert exc.value.reason == InadmissibleReason.OWNER_OVERLAP

    def test_full_reported_before_owner_overlap(
        self, make_station, make_schedule, booking_service, owner
    ) -> None:
        make_station()
        make_schedule(schedule_date=TOMORROW, max_concurrent=1)
        booking_service.create_booking(owner, STATION_ID, _local_window())
        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(owner, STATION_ID, _local_window())
        assert exc.value.reason == InadmissibleReason.FULL

    def test_rejected_booking_still_blocks_owner(
        self, station, booking_service, owner, operator
    ) -> None:
        first = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.reject_booking(operator, first.id, "No cable")

        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(owner, STATION_ID, _local_window())
        assert exc.value.reason == InadmissibleReason.OWNER_OVERLAP

    def test_owner_overlap_ignores_id_case(self, station, booking_service) -> None:
        upper = ActorPrincipal(actor_id="19901234567V", role=ActorRole.OWNER)
        lower = ActorPrincipal(actor_id="19901234567v", role=ActorRole.OWNER)
        booking = booking_service.create_booking(upper, STATION_ID, _local_window())
        assert booking_service.get_booking(lower, booking.id).id == booking.id

        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.create_booking(lower, STATION_ID, _local_window())
        assert exc.value.reason == InadmissibleReason.OWNER_OVERLAP
        assert [b.id for b in booking_service.list_for_owner(lower, "19901234567V")] == [
            booking.id
        ]
        assert booking_service.owner_counts(lower).pending == 1

    def test_cancelled_booking_frees_capacity(
        self, make_station, make_schedule, booking_service, owner, other_owner
    ) -> None:
        make_station()
        make_schedule(schedule_date=TOMORROW, max_concurrent=1)
        first = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.cancel_booking(owner, first.id)

        second = booking_service.create_booking(other_owner, STATION_ID, _local_window())
        assert second.status == BookingStatus.PENDING.value


class TestCapacityRace:
    def _inject_competitor(self, db, booking_service, window_start, window_end):
        """Commit a competing booking between the admission check and the write."""
        original = booking_service._check_admissible

        def racing_check(*args, **kwargs):
            schedule = original(*args, **kwargs)
            db.add(
                Booking(
                    owner_id="rival",
                    station_id=STATION_ID,
                    start_utc=window_start,
                    end_utc=window_end,
                    time_zone="Asia/Colombo",
                    status=BookingStatus.PENDING.value,
                    created_at=NOW - timedelta(minutes=1),
                )
            )
            db.flush()
            return schedule

        return patch.object(booking_service, "_check_admissible", side_effect=racing_check)

    def test_create_loser_is_rejected(
        self, db, make_station, make_schedule, booking_service, owner
    ) -> None:
        make_station()
        make_schedule(schedule_date=TOMORROW, max_concurrent=1)
        start = datetime(2030, 3, 11, 3, 30, tzinfo=timezone.utc)

        with self._inject_competitor(db, booking_service, start, start + timedelta(hours=1)):
            with pytest.raises(CapacityRaceException) as exc:
                booking_service.create_booking(owner, STATION_ID, _local_window())

        loser = db.get(Booking, exc.value.details["booking_id"])
        assert loser.status == BookingStatus.REJECTED.value
        assert loser.status_reason == CAPACITY_RACE_REASON
        assert loser.is_auth_active is False
        assert booking_service.repository.count_overlapping(
            STATION_ID, start, start + timedelta(hours=1)
        ) == 1
        assert not booking_service.repository.owner_overlap_exists(
            owner.id, start, start + timedelta(hours=1)
        )

    def test_update_loser_is_rejected(
        self, db, make_station, make_schedule, booking_service, owner
    ) -> None:
        make_station()
        make_schedule(schedule_date=TOMORROW, max_concurrent=1)
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        new_start = datetime(2030, 3, 11, 5, 30, tzinfo=timezone.utc)  # 11:00 local

        with self._inject_competitor(
            db, booking_service, new_start, new_start + timedelta(hours=1)
        ):
            with pytest.raises(CapacityRaceException):
                booking_service.update_booking(
                    owner, booking.id, _local_window(start_hour=11, end_hour=12)
                )

        db.refresh(booking)
        assert booking.status == BookingStatus.REJECTED.value
        assert booking.status_reason == CAPACITY_RACE_REASON


class TestUpdateBooking:
    def test_update_moves_window_and_reissues_token(
        self, station, booking_service, owner
    ) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        old_jti, old_token = booking.qr_jti, booking.qr_token

        updated = booking_service.update_booking(
            owner, booking.id, _local_window(start_hour=9, start_minute=30, end_hour=11)
        )

        assert updated.start_utc == datetime(2030, 3, 11, 4, 0, tzinfo=timezone.utc)
        assert updated.qr_jti != old_jti
        assert updated.qr_token != old_token
        assert updated.status == BookingStatus.PENDING.value
        assert updated.updated_at == NOW

    def test_own_row_does_not_count_against_capacity(
        self, make_station, make_schedule, booking_service, owner
    ) -> None:
        make_station()
        make_schedule(schedule_date=TOMORROW, max_concurrent=1)
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())

        updated = booking_service.update_booking(
            owner, booking.id, _local_window(start_hour=9, end_hour=11)
        )

        assert updated.end_utc == datetime(2030, 3, 11, 5, 30, tzinfo=timezone.utc)
        assert updated.status == BookingStatus.PENDING.value

    def test_update_still_blocked_by_others(
        self, make_station, make_schedule, booking_service, owner, other_owner
    ) -> None:
        make_station()
        make_schedule(schedule_date=TOMORROW, max_concurrent=1)
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.create_booking(
            other_owner, STATION_ID, _local_window(start_hour=10, end_hour=11)
        )

        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.update_booking(
                owner, booking.id, _local_window(start_hour=9, end_hour=11)
            )
        assert exc.value.reason == InadmissibleReason.FULL

    def test_old_token_stops_validating(
        self, station, booking_service, owner, operator, clock
    ) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        old_token = booking.qr_token
        booking_service.approve_booking(operator, booking.id)
        booking_service.update_booking(owner, booking.id, _local_window(start_hour=11, end_hour=12))

        # Still before the old token's own expiry
        clock.current = datetime(2030, 3, 11, 4, 45, tzinfo=timezone.utc)
        with pytest.raises(QrValidationException) as exc:
            booking_service.validator.validate(old_token)
        assert exc.value.failure == QrFailure.REPLACED

        clock.current = datetime(2030, 3, 11, 5, 30, tzinfo=timezone.utc)  # 11:00 local
        assert booking_service.validator.validate(booking.qr_token).id == booking.id

    def test_update_keeps_approval(self, station, booking_service, owner, operator) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.approve_booking(operator, booking.id)
        updated = booking_service.update_booking(
            owner, booking.id, _local_window(start_hour=12, end_hour=13)
        )
        assert updated.status == BookingStatus.APPROVED.value
        assert updated.is_auth_active is True

    def test_update_inside_cutoff(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window(TODAY, 9, 10))
        with pytest.raises(TooLateToModifyException):
            booking_service.update_booking(owner, booking.id, _local_window())

    def test_update_new_window_inadmissible(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        with pytest.raises(InadmissibleBookingException) as exc:
            booking_service.update_booking(owner, booking.id, _local_window(start_hour=4))
        assert exc.value.reason == InadmissibleReason.OUTSIDE_SCHEDULE

    def test_update_by_another_owner(self, station, booking_service, owner, other_owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        with pytest.raises(ForbiddenException):
            booking_service.update_booking(other_owner, booking.id, _local_window(start_hour=11))

    def test_update_terminal_booking(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.cancel_booking(owner, booking.id)
        with pytest.raises(InvalidTransitionException):
            booking_service.update_booking(owner, booking.id, _local_window(start_hour=11))


class TestCancelBooking:
    def test_cancel_pending(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        cancelled = booking_service.cancel_booking(owner, booking.id)
        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.is_auth_active is False

    def test_cancel_approved_deactivates_token(
        self, station, booking_service, owner, operator
    ) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.approve_booking(operator, booking.id)
        cancelled = booking_service.cancel_booking(owner, booking.id)
        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.is_auth_active is False

    def test_cancel_inside_cutoff(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window(TODAY, 9, 10))
        with pytest.raises(TooLateToModifyException):
            booking_service.cancel_booking(owner, booking.id)

    def test_cancel_twice(self, station, booking_service, owner) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.cancel_booking(owner, booking.id)
        with pytest.raises(InvalidTransitionException):
            booking_service.cancel_booking(owner, booking.id)

    def test_unknown_booking(self, station, booking_service, owner) -> None:
        with pytest.raises(NotFoundException):
            booking_service.cancel_booking(owner, "01HZZZZZZZZZZZZZZZZZZZZZZZ")
        with pytest.raises(NotFoundException):
            booking_service.cancel_booking(owner, "not-a-ulid")


class TestOperatorTransitions:
    def test_approve_activates(self, station, booking_service, owner, operator) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        approved = booking_service.approve_booking(operator, booking.id)
        assert approved.status == BookingStatus.APPROVED.value
        assert approved.is_auth_active is True

    def test_approve_twice(self, station, booking_service, owner, operator) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.approve_booking(operator, booking.id)
        with pytest.raises(InvalidTransitionException) as exc:
            booking_service.approve_booking(operator, booking.id)
        assert exc.value.details == {"current": "APPROVED", "target": "APPROVED"}

    def test_reject_records_reason(self, station, booking_service, owner, operator) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        rejected = booking_service.reject_booking(operator, booking.id, "Maintenance")
        assert rejected.status == BookingStatus.REJECTED.value
        assert rejected.status_reason == "Maintenance"
        assert rejected.is_auth_active is False

    def test_cannot_reject_approved(self, station, booking_service, owner, operator) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.approve_booking(operator, booking.id)
        with pytest.raises(InvalidTransitionException):
            booking_service.reject_booking(operator, booking.id)

    def test_finalize_only_from_approved(self, station, booking_service, owner, operator) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        with pytest.raises(InvalidTransitionException):
            booking_service.finalize_booking(operator, booking.id)

        booking_service.approve_booking(operator, booking.id)
        completed = booking_service.finalize_booking(operator, booking.id)
        assert completed.status == BookingStatus.COMPLETED.value
        assert completed.is_auth_active is False

    def test_unassigned_operator(
        self, station, booking_service, owner, foreign_operator, backoffice
    ) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        with pytest.raises(ForbiddenException):
            booking_service.approve_booking(foreign_operator, booking.id)
        assert booking_service.approve_booking(backoffice, booking.id).is_auth_active


class TestValidateAndConsume:
    SCAN_AT = datetime(2030, 3, 10, 3, 30, tzinfo=timezone.utc)  # 09:00 local

    def _approved_today(self, booking_service, owner, operator) -> Booking:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window(TODAY, 9, 10))
        return booking_service.approve_booking(operator, booking.id)

    def test_single_use(self, station, booking_service, owner, operator) -> None:
        booking = self._approved_today(booking_service, owner, operator)

        consumed = booking_service.validate_and_consume_qr(operator, booking.qr_token, self.SCAN_AT)
        assert consumed.qr_validated_at == self.SCAN_AT
        assert consumed.is_auth_active is False
        assert consumed.status == BookingStatus.APPROVED.value

        with pytest.raises(QrValidationException) as exc:
            booking_service.validate_and_consume_qr(operator, booking.qr_token, self.SCAN_AT)
        assert exc.value.failure == QrFailure.ALREADY_USED

    def test_lost_conditional_update_is_already_used(
        self, station, booking_service, owner, operator
    ) -> None:
        booking = self._approved_today(booking_service, owner, operator)
        real_mark = booking_service.repository.mark_qr_validated

        def rival_scan_wins(booking_id, jti, validated_at):
            real_mark(booking_id, jti, validated_at)
            return False

        with patch.object(
            booking_service.repository, "mark_qr_validated", side_effect=rival_scan_wins
        ):
            with pytest.raises(QrValidationException) as exc:
                booking_service.validate_and_consume_qr(operator, booking.qr_token, self.SCAN_AT)
        assert exc.value.failure == QrFailure.ALREADY_USED

    def test_finalized_between_validate_and_consume(
        self, station, booking_service, owner, operator
    ) -> None:
        booking = self._approved_today(booking_service, owner, operator)
        validate = booking_service.validator.validate

        def finalize_mid_scan(token, now=None):
            checked = validate(token, now)
            booking_service.finalize_booking(operator, booking.id)
            return checked

        with patch.object(booking_service.validator, "validate", side_effect=finalize_mid_scan):
            with pytest.raises(QrValidationException) as exc:
                booking_service.validate_and_consume_qr(operator, booking.qr_token, self.SCAN_AT)

        assert exc.value.failure == QrFailure.NOT_APPROVED
        assert booking.status == BookingStatus.COMPLETED.value
        assert booking.qr_validated_at is None

    def test_owner_cannot_scan(self, station, booking_service, owner, operator) -> None:
        booking = self._approved_today(booking_service, owner, operator)
        with pytest.raises(ForbiddenException):
            booking_service.validate_and_consume_qr(owner, booking.qr_token, self.SCAN_AT)

    def test_operator_of_other_station(
        self, station, booking_service, owner, operator, foreign_operator
    ) -> None:
        booking = self._approved_today(booking_service, owner, operator)
        with pytest.raises(ForbiddenException):
            booking_service.validate_and_consume_qr(
                foreign_operator, booking.qr_token, self.SCAN_AT
            )
        assert booking.qr_validated_at is None

    def test_finalize_after_scan(self, station, booking_service, owner, operator) -> None:
        booking = self._approved_today(booking_service, owner, operator)
        booking_service.validate_and_consume_qr(operator, booking.qr_token, self.SCAN_AT)
        assert booking_service.finalize_booking(operator, booking.id).status == "COMPLETED"


class TestQueries:
    def test_owner_listing(self, station, booking_service, owner, other_owner) -> None:
        first = booking_service.create_booking(owner, STATION_ID, _local_window())
        second = booking_service.create_booking(owner, STATION_ID, _local_window(TODAY, 9, 10))

        listed = booking_service.list_for_owner(owner, owner.id)
        assert [b.id for b in listed] == [first.id, second.id]  # newest start first

        with pytest.raises(ForbiddenException):
            booking_service.list_for_owner(other_owner, owner.id)

    def test_pending_queue_is_scoped_to_operator(
        self,
        station,
        make_station,
        make_schedule,
        booking_service,
        owner,
        other_owner,
        operator,
        backoffice,
    ) -> None:
        make_station(station_id=OTHER_STATION_ID)
        make_schedule(station_id=OTHER_STATION_ID, schedule_date=TOMORROW)
        mine = booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.create_booking(other_owner, OTHER_STATION_ID, _local_window())

        assert [b.id for b in booking_service.list_pending(operator)] == [mine.id]
        assert len(booking_service.list_pending(backoffice)) == 2
        with pytest.raises(ForbiddenException):
            booking_service.list_pending(operator, station_id=OTHER_STATION_ID)

    def test_pending_queue_range(self, station, booking_service, owner, operator) -> None:
        with pytest.raises(ValidationException):
            booking_service.list_pending(operator, from_utc=NOW, to_utc=NOW - timedelta(hours=1))

        booking_service.create_booking(owner, STATION_ID, _local_window())
        assert booking_service.list_pending(operator, to_utc=NOW + timedelta(hours=1)) == []

    def test_counts(self, station, booking_service, owner, other_owner, operator) -> None:
        today = booking_service.create_booking(owner, STATION_ID, _local_window(TODAY, 9, 10))
        booking_service.create_booking(owner, STATION_ID, _local_window())
        booking_service.create_booking(other_owner, STATION_ID, _local_window(TODAY, 12, 13))
        booking_service.approve_booking(operator, today.id)

        counts = booking_service.owner_counts(owner)
        assert (counts.pending, counts.approved_future) == (1, 1)

        summary = booking_service.operator_summary(operator)
        assert (summary.pending, summary.approved) == (2, 1)

        assert [b.id for b in booking_service.list_by_status(operator, BookingStatus.APPROVED)] == [
            today.id
        ]
        assert len(booking_service.list_my_pending(owner)) == 1

    def test_get_booking_visibility(
        self, station, booking_service, owner, other_owner, operator, foreign_operator
    ) -> None:
        booking = booking_service.create_booking(owner, STATION_ID, _local_window())
        assert booking_service.get_booking(owner, booking.id).id == booking.id
        assert booking_service.get_booking(operator, booking.id).id == booking.id
        for actor in (other_owner, foreign_operator):
            with pytest.raises(ForbiddenException):
                booking_service.get_booking(actor, booking.id)


class TestServiceMetrics:
    def test_measured_operations_are_recorded(self, station, booking_service, owner) -> None:
        booking_service.create_booking(owner, STATION_ID, _local_window())
        metrics = booking_service.get_metrics()
        assert metrics["create_booking"]["success_count"] >= 1

    def test_default_policies_come_from_settings(self, db) -> None:
        service = BookingService(db)
        assert service.policy.horizon_days == 7
        assert service.qr_policy.algorithm == "HS256"
