# backend/evbooking/repositories/__init__.py
"""
Repository Pattern Implementation for the EV booking service.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- BookingRepository: Overlap counts, conditional updates, booking queues
- StationRepository / StationScheduleRepository: Station ceiling and daily schedules

Usage:
    from evbooking.repositories import RepositoryFactory

    repository = RepositoryFactory.create_booking_repository(db)
    taken = repository.count_overlapping(station_id, start_utc, end_utc)
"""

from .base_repository import BaseRepository, IRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .station_repository import StationRepository, StationScheduleRepository

__all__ = [
    "BaseRepository",
    "IRepository",
    "BookingRepository",
    "RepositoryFactory",
    "StationRepository",
    "StationScheduleRepository",
]
