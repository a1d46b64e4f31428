# backend/evbooking/models/__init__.py
"""
SQLAlchemy models for the EV booking service.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import ACTIVE_STATUSES, TERMINAL_STATUSES, Booking, BookingStatus
from .station import MINUTES_PER_DAY, Station, StationSchedule

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Booking",
    "BookingStatus",
    "MINUTES_PER_DAY",
    "Station",
    "StationSchedule",
]
