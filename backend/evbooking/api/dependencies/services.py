# backend/evbooking/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import settings
from ...services.booking_rules import BookingPolicy, QrPolicy
from ...services.booking_service import BookingService
from ...services.slot_availability_service import SlotAvailabilityService
from ...services.station_schedule_service import StationScheduleService
from .database import get_db

logger = logging.getLogger(__name__)


def get_booking_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(settings)


def get_qr_policy() -> QrPolicy:
    return QrPolicy.from_settings(settings)


def get_booking_service(
    db: Session = Depends(get_db),
    policy: BookingPolicy = Depends(get_booking_policy),
    qr_policy: QrPolicy = Depends(get_qr_policy),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        policy: Horizon/cutoff policy
        qr_policy: QR signing and grace-window policy

    Returns:
        BookingService instance
    """
    return BookingService(db, policy=policy, qr_policy=qr_policy)


def get_slot_availability_service(db: Session = Depends(get_db)) -> SlotAvailabilityService:
    return SlotAvailabilityService(db, default_time_zone=settings.default_facility_timezone)


def get_station_schedule_service(db: Session = Depends(get_db)) -> StationScheduleService:
    return StationScheduleService(db)
