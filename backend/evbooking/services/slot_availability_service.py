# backend/evbooking/services/slot_availability_service.py
"""
Slot availability for a station's local day.

Slots are derived on every call from the day's schedule and the live booking
set; nothing is cached or persisted.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import minutes_to_wall_clock, to_utc
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock
from .booking_rules import ensure_schedule_well_formed


@dataclass(frozen=True)
class Slot:
    start_local: datetime
    end_local: datetime
    start_utc: datetime
    end_utc: datetime
    available: int


class SlotAvailabilityService(BaseService):
    """Computes bookable slots under a station's concurrency cap."""

    def __init__(
        self,
        db: Session,
        default_time_zone: Optional[str] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock)
        self.station_repository = RepositoryFactory.create_station_repository(db)
        self.schedule_repository = RepositoryFactory.create_station_schedule_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.default_time_zone = default_time_zone or settings.default_facility_timezone

    @BaseService.measure_operation("compute_slots")
    def compute_slots(
        self,
        station_id: str,
        day: date,
        granularity_minutes: Optional[int] = None,
    ) -> List[Slot]:
        """
        Split the day's opening window into fixed slots with remaining capacity.

        Args:
            station_id: Station to compute for
            day: Local calendar date at the facility
            granularity_minutes: Slot length; defaults to the configured size

        Returns:
            Slots ordered earliest first. A trailing partial slot is dropped.

        Raises:
            ValidationException: Non-positive granularity
            NotFoundException: Unknown station or no schedule for the day
            BadScheduleException: Stored schedule window is malformed
        """
        step = granularity_minutes
        if step is None:
            step = settings.default_slot_minutes
        if step <= 0:
            raise ValidationException(
                "Slot granularity must be positive",
                code="INVALID_GRANULARITY",
                details={"granularity_minutes": step},
            )

        station = self.station_repository.get_by_id(station_id)
        if station is None:
            raise NotFoundException(f"Station {station_id} not found", code="STATION_NOT_FOUND")
        zone_id = station.resolve_time_zone(self.default_time_zone)

        schedule = self.schedule_repository.get_for_day(station_id, day)
        if schedule is None:
            raise NotFoundException(
                "No schedule for the selected date",
                code="SCHEDULE_NOT_FOUND",
                details={"station_id": station_id, "date": day.isoformat()},
            )
        ensure_schedule_well_formed(schedule)

        day_open = minutes_to_wall_clock(day, schedule.open_minutes)
        day_close = minutes_to_wall_clock(day, schedule.close_minutes)
        bookings = self.booking_repository.get_active_for_station_between(
            station_id, to_utc(day_open, zone_id), to_utc(day_close, zone_id)
        )

        slots: List[Slot] = []
        cursor = day_open
        width = timedelta(minutes=step)
        while cursor + width <= day_close:
            start_utc = to_utc(cursor, zone_id)
            end_utc = to_utc(cursor + width, zone_id)
            taken = sum(1 for b in bookings if b.overlaps(start_utc, end_utc))
            slots.append(
                Slot(
                    start_local=cursor,
                    end_local=cursor + width,
                    start_utc=start_utc,
                    end_utc=end_utc,
                    available=max(0, schedule.max_concurrent - taken),
                )
            )
            cursor += width

        self.logger.debug(
            "Computed slots",
            extra={"station_id": station_id, "date": day.isoformat(), "slots": len(slots)},
        )
        return slots
