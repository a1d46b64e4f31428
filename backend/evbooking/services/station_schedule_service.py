# backend/evbooking/services/station_schedule_service.py
"""
Station schedule administration.

A schedule's concurrency cap may never exceed the station's physical slot
count at the time it is written. Edits do not touch existing bookings.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BadScheduleException,
    ConflictException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..models.station import MINUTES_PER_DAY, Station, StationSchedule
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock


class StationScheduleService(BaseService):
    """Create, change, remove and list per-day station schedules."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.station_repository = RepositoryFactory.create_station_repository(db)
        self.schedule_repository = RepositoryFactory.create_station_schedule_repository(db)

    def _require_active_station(self, station_id: str) -> Station:
        station = self.station_repository.get_active(station_id)
        if station is None:
            raise NotFoundException(
                "Station not found or inactive",
                code="STATION_NOT_FOUND",
                details={"station_id": station_id},
            )
        return station

    def _validate(
        self, station: Station, open_minutes: int, close_minutes: int, max_concurrent: int
    ) -> None:
        if not 0 <= open_minutes < close_minutes <= MINUTES_PER_DAY:
            raise BadScheduleException(open_minutes, close_minutes)
        if max_concurrent < 1 or max_concurrent > station.total_slots:
            raise ValidationException(
                f"max_concurrent must be between 1 and {station.total_slots}",
                code="INVALID_MAX_CONCURRENT",
                details={"max_concurrent": max_concurrent, "total_slots": station.total_slots},
            )

    def _ensure_day_free(
        self, station_id: str, schedule_date: date, exclude_id: Optional[str] = None
    ) -> None:
        existing = self.schedule_repository.get_for_day(station_id, schedule_date)
        if existing is not None and existing.id != exclude_id:
            raise ConflictException(
                "A schedule already exists for this station and date",
                code="SCHEDULE_EXISTS",
                details={"station_id": station_id, "date": schedule_date.isoformat()},
            )

    @BaseService.measure_operation("create_schedule")
    def create_schedule(
        self,
        station_id: str,
        schedule_date: date,
        open_minutes: int,
        close_minutes: int,
        max_concurrent: int,
    ) -> StationSchedule:
        station = self._require_active_station(station_id)
        self._validate(station, open_minutes, close_minutes, max_concurrent)
        self._ensure_day_free(station_id, schedule_date)

        try:
            with self.transaction():
                schedule = self.schedule_repository.create(
                    station_id=station_id,
                    schedule_date=schedule_date,
                    open_minutes=open_minutes,
                    close_minutes=close_minutes,
                    max_concurrent=max_concurrent,
                )
        except RepositoryException:
            raise ConflictException(
                "A schedule already exists for this station and date",
                code="SCHEDULE_EXISTS",
            ) from None

        self.log_operation(
            "create_schedule",
            station_id=station_id,
            schedule_id=schedule.id,
            date=schedule_date.isoformat(),
        )
        return schedule

    @BaseService.measure_operation("update_schedule")
    def update_schedule(
        self,
        schedule_id: str,
        schedule_date: date,
        open_minutes: int,
        close_minutes: int,
        max_concurrent: int,
    ) -> StationSchedule:
        schedule = self.get_schedule(schedule_id)
        station = self._require_active_station(schedule.station_id)
        self._validate(station, open_minutes, close_minutes, max_concurrent)
        if schedule_date != schedule.schedule_date:
            self._ensure_day_free(schedule.station_id, schedule_date, exclude_id=schedule.id)

        with self.transaction():
            updated = self.schedule_repository.update(
                schedule.id,
                schedule_date=schedule_date,
                open_minutes=open_minutes,
                close_minutes=close_minutes,
                max_concurrent=max_concurrent,
            )

        self.log_operation("update_schedule", schedule_id=schedule_id)
        return updated or schedule

    @BaseService.measure_operation("delete_schedule")
    def delete_schedule(self, schedule_id: str) -> None:
        schedule = self.get_schedule(schedule_id)
        with self.transaction():
            self.schedule_repository.delete(schedule.id)
        self.log_operation("delete_schedule", schedule_id=schedule_id)

    def get_schedule(self, schedule_id: str) -> StationSchedule:
        schedule = self.schedule_repository.get_by_id(schedule_id)
        if schedule is None:
            raise NotFoundException(
                "Schedule not found", code="SCHEDULE_NOT_FOUND", details={"id": schedule_id}
            )
        return schedule

    def list_schedules(
        self, station_id: str, from_date: date, to_date: date
    ) -> List[StationSchedule]:
        """Schedules for ``from_date..to_date`` inclusive, ordered by date."""
        if to_date < from_date:
            raise ValidationException(
                "'to' must be on or after 'from'",
                code="INVALID_DATE_RANGE",
                details={"from": from_date.isoformat(), "to": to_date.isoformat()},
            )
        return self.schedule_repository.get_range(station_id, from_date, to_date)
