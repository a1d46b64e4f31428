# backend/evbooking/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_actor, require_owner, require_staff
from .database import get_db
from .services import (
    get_booking_policy,
    get_booking_service,
    get_qr_policy,
    get_slot_availability_service,
    get_station_schedule_service,
)

__all__ = [
    # Auth
    "get_current_actor",
    "require_owner",
    "require_staff",
    # Database
    "get_db",
    # Services
    "get_booking_policy",
    "get_qr_policy",
    "get_booking_service",
    "get_slot_availability_service",
    "get_station_schedule_service",
]
