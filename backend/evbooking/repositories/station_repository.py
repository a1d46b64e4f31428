# backend/evbooking/repositories/station_repository.py
"""
Station and schedule repositories.

Stations are read-only here. Schedules are read by the slot calculator and
the admission guards, and written by the schedule administration service.
"""

from datetime import date
import logging
from typing import List, Optional, cast

from sqlalchemy.orm import Session

from ..models.station import Station, StationSchedule
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class StationRepository(BaseRepository[Station]):
    """Read access to stations."""

    def __init__(self, db: Session):
        super().__init__(db, Station)

    def get_active(self, station_id: str) -> Optional[Station]:
        """Return the station only if it exists and is active."""
        query = self._build_query().filter(Station.id == station_id, Station.is_active.is_(True))
        results = self._execute_query(query.limit(1))
        return results[0] if results else None


class StationScheduleRepository(BaseRepository[StationSchedule]):
    """Schedule lookups by (station, local date) and date range."""

    def __init__(self, db: Session):
        super().__init__(db, StationSchedule)

    def get_for_day(self, station_id: str, schedule_date: date) -> Optional[StationSchedule]:
        query = self._build_query().filter(
            StationSchedule.station_id == station_id,
            StationSchedule.schedule_date == schedule_date,
        )
        results = self._execute_query(query.limit(1))
        return results[0] if results else None

    def get_range(
        self, station_id: str, from_date: date, to_date: date
    ) -> List[StationSchedule]:
        """Schedules for a station with ``from_date <= date <= to_date``, ordered by date."""
        query = (
            self._build_query()
            .filter(
                StationSchedule.station_id == station_id,
                StationSchedule.schedule_date >= from_date,
                StationSchedule.schedule_date <= to_date,
            )
            .order_by(StationSchedule.schedule_date)
        )
        return cast(List[StationSchedule], self._execute_query(query))
