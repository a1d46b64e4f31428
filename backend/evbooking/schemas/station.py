# backend/evbooking/schemas/station.py
"""Schedule and slot schemas."""

from datetime import date, datetime
from typing import List

from pydantic import Field

from ..models.station import StationSchedule
from ._strict_base import OrmResponseModel, StrictModel, StrictRequestModel


def _hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class ScheduleWrite(StrictRequestModel):
    """
    Opening window as minute-of-day offsets from local midnight.

    Range and ceiling checks happen in the service so they report the same
    errors whether the call comes over HTTP or not.
    """

    schedule_date: date
    open_minutes: int = Field(..., description="e.g. 360 for 06:00")
    close_minutes: int = Field(..., description="e.g. 1320 for 22:00; 1440 is midnight")
    max_concurrent: int


class ScheduleResponse(OrmResponseModel):
    id: str
    station_id: str
    schedule_date: date
    open_minutes: int
    close_minutes: int
    max_concurrent: int
    open_time: str
    close_time: str

    @classmethod
    def from_schedule(cls, schedule: StationSchedule) -> "ScheduleResponse":
        return cls(
            id=schedule.id,
            station_id=schedule.station_id,
            schedule_date=schedule.schedule_date,
            open_minutes=schedule.open_minutes,
            close_minutes=schedule.close_minutes,
            max_concurrent=schedule.max_concurrent,
            open_time=_hhmm(schedule.open_minutes),
            close_time=_hhmm(schedule.close_minutes),
        )


class SlotResponse(OrmResponseModel):
    start_local: datetime
    end_local: datetime
    start_utc: datetime
    end_utc: datetime
    available: int


class SlotListResponse(StrictModel):
    station_id: str
    schedule_date: date
    granularity_minutes: int
    slots: List[SlotResponse]
