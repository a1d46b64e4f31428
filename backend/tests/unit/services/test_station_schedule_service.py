from __future__ import annotations

from datetime import timedelta

from conftest import STATION_ID, TODAY, TOMORROW
import pytest

from evbooking.core.exceptions import (
    BadScheduleException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from evbooking.services.station_schedule_service import StationScheduleService


@pytest.fixture
def schedule_service(db, clock) -> StationScheduleService:
    return StationScheduleService(db, clock=clock)


class TestCreateSchedule:
    def test_create(self, make_station, schedule_service) -> None:
        make_station(total_slots=4)
        schedule = schedule_service.create_schedule(STATION_ID, TODAY, 360, 1320, 4)

        assert schedule.id
        assert schedule.station_id == STATION_ID
        assert (schedule.open_minutes, schedule.close_minutes) == (360, 1320)
        assert schedule.max_concurrent == 4

    def test_full_day_is_allowed(self, make_station, schedule_service) -> None:
        make_station()
        schedule = schedule_service.create_schedule(STATION_ID, TODAY, 0, 1440, 1)
        assert schedule.is_well_formed

    def test_cap_cannot_exceed_physical_slots(self, make_station, schedule_service) -> None:
        make_station(total_slots=2)
        with pytest.raises(ValidationException) as exc:
            schedule_service.create_schedule(STATION_ID, TODAY, 360, 1320, 3)
        assert exc.value.code == "INVALID_MAX_CONCURRENT"
        assert exc.value.details == {"max_concurrent": 3, "total_slots": 2}

    def test_cap_must_be_positive(self, make_station, schedule_service) -> None:
        make_station()
        with pytest.raises(ValidationException):
            schedule_service.create_schedule(STATION_ID, TODAY, 360, 1320, 0)

    @pytest.mark.parametrize(
        "open_minutes,close_minutes", [(600, 600), (700, 600), (-1, 600), (0, 1441)]
    )
    def test_bad_window(self, make_station, schedule_service, open_minutes, close_minutes) -> None:
        make_station()
        with pytest.raises(BadScheduleException):
            schedule_service.create_schedule(STATION_ID, TODAY, open_minutes, close_minutes, 1)

    def test_one_schedule_per_day(self, make_station, schedule_service) -> None:
        make_station()
        schedule_service.create_schedule(STATION_ID, TODAY, 360, 1320, 1)
        with pytest.raises(ConflictException) as exc:
            schedule_service.create_schedule(STATION_ID, TODAY, 400, 1000, 1)
        assert exc.value.code == "SCHEDULE_EXISTS"

    def test_inactive_station(self, make_station, schedule_service) -> None:
        make_station(is_active=False)
        with pytest.raises(NotFoundException):
            schedule_service.create_schedule(STATION_ID, TODAY, 360, 1320, 1)


class TestChangeSchedule:
    def test_update_hours_and_cap(self, make_station, make_schedule, schedule_service) -> None:
        make_station(total_slots=4)
        schedule = make_schedule(max_concurrent=2)

        updated = schedule_service.update_schedule(schedule.id, TODAY, 480, 1200, 3)

        assert (updated.open_minutes, updated.close_minutes, updated.max_concurrent) == (
            480,
            1200,
            3,
        )

    def test_move_onto_taken_day(self, make_station, make_schedule, schedule_service) -> None:
        make_station()
        make_schedule(schedule_date=TODAY)
        tomorrow = make_schedule(schedule_date=TOMORROW)
        with pytest.raises(ConflictException):
            schedule_service.update_schedule(tomorrow.id, TODAY, 360, 1320, 1)

    def test_update_unknown(self, schedule_service) -> None:
        with pytest.raises(NotFoundException) as exc:
            schedule_service.update_schedule("missing", TODAY, 360, 1320, 1)
        assert exc.value.code == "SCHEDULE_NOT_FOUND"

    def test_delete(self, make_station, make_schedule, schedule_service) -> None:
        make_station()
        schedule = make_schedule()
        schedule_service.delete_schedule(schedule.id)
        with pytest.raises(NotFoundException):
            schedule_service.get_schedule(schedule.id)


class TestListSchedules:
    def test_range_is_inclusive_and_ordered(
        self, make_station, make_schedule, schedule_service
    ) -> None:
        make_station()
        later = make_schedule(schedule_date=TODAY + timedelta(days=2))
        first = make_schedule(schedule_date=TODAY)
        make_schedule(schedule_date=TODAY + timedelta(days=5))

        listed = schedule_service.list_schedules(
            STATION_ID, TODAY, TODAY + timedelta(days=2)
        )
        assert [s.id for s in listed] == [first.id, later.id]

    def test_inverted_range(self, schedule_service) -> None:
        with pytest.raises(ValidationException) as exc:
            schedule_service.list_schedules(STATION_ID, TOMORROW, TODAY)
        assert exc.value.code == "INVALID_DATE_RANGE"
