# backend/evbooking/models/station.py
"""
Station and per-day schedule models.

Stations are owned by facility management; this service reads them for the
capacity ceiling (``total_slots``), the active flag and the facility zone.
Schedules carry the opening window as minute-of-day offsets from local
midnight and the concurrency cap for that calendar day.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base

MINUTES_PER_DAY = 1440


class Station(Base):
    """Charging station capacity ceiling and facility zone."""

    __tablename__ = "stations"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    name = Column(String(200), nullable=False, default="")
    total_slots = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    time_zone = Column(String(64), nullable=True)

    schedules = relationship(
        "StationSchedule", back_populates="station", cascade="all, delete-orphan"
    )

    __table_args__ = (CheckConstraint("total_slots > 0", name="check_total_slots_positive"),)

    def resolve_time_zone(self, default_zone: str) -> str:
        """Zone this station operates in; ``default_zone`` is passed in explicitly."""
        return self.time_zone or default_zone

    def __repr__(self) -> str:
        return f"<Station {self.id}: {self.name} slots={self.total_slots} active={self.is_active}>"


class StationSchedule(Base):
    """Opening window and concurrency cap for one station on one local date."""

    __tablename__ = "station_schedules"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    station_id = Column(String(26), ForeignKey("stations.id"), nullable=False, index=True)
    schedule_date = Column(Date, nullable=False)
    open_minutes = Column(Integer, nullable=False)  # e.g., 360 for 06:00
    close_minutes = Column(Integer, nullable=False)  # e.g., 1320 for 22:00
    max_concurrent = Column(Integer, nullable=False)

    station = relationship("Station", back_populates="schedules")

    __table_args__ = (
        UniqueConstraint("station_id", "schedule_date", name="uq_station_schedule_day"),
        CheckConstraint("max_concurrent > 0", name="check_max_concurrent_positive"),
    )

    @property
    def is_well_formed(self) -> bool:
        return 0 <= self.open_minutes < self.close_minutes <= MINUTES_PER_DAY

    def __repr__(self) -> str:
        return (
            f"<StationSchedule {self.station_id} {self.schedule_date}: "
            f"{self.open_minutes}-{self.close_minutes} max={self.max_concurrent}>"
        )
