# backend/evbooking/repositories/factory.py
"""
Repository Factory for the EV booking service.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .station_repository import StationRepository, StationScheduleRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_station_repository(db: Session) -> "StationRepository":
        """Create repository for station reads."""
        from .station_repository import StationRepository

        return StationRepository(db)

    @staticmethod
    def create_station_schedule_repository(db: Session) -> "StationScheduleRepository":
        """Create repository for station schedule operations."""
        from .station_repository import StationScheduleRepository

        return StationScheduleRepository(db)
