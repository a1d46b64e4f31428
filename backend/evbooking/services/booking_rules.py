# backend/evbooking/services/booking_rules.py
"""
Booking admission and modification rules.

Pure guard functions with no database access. The booking service runs them
in a fixed order so a refused request reports exactly one reason:

    InvalidWindow -> PastStart -> HorizonExceeded -> NoSchedule
        -> OutsideSchedule -> Full -> OwnerOverlap

The first five are evaluated here; capacity and owner overlap need the
booking store and are checked by ``BookingService`` under the station lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import TYPE_CHECKING, Optional

from ..core.config import Settings, settings
from ..core.enums import InadmissibleReason
from ..core.exceptions import (
    BadScheduleException,
    InadmissibleBookingException,
    TooLateToModifyException,
)
from ..core.timezone_utils import TimeWindow, ensure_utc, minutes_to_wall_clock, to_local, to_utc
from ..models.station import StationSchedule

if TYPE_CHECKING:
    from ..schemas.booking import TimeInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingPolicy:
    """Temporal limits applied to create, update and cancel."""

    horizon_days: int = 7
    cutoff_hours: int = 12
    default_time_zone: str = "Asia/Colombo"

    @property
    def horizon(self) -> timedelta:
        return timedelta(days=self.horizon_days)

    @property
    def cutoff(self) -> timedelta:
        return timedelta(hours=self.cutoff_hours)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "BookingPolicy":
        config = config or settings
        return cls(
            horizon_days=config.booking_horizon_days,
            cutoff_hours=config.modification_cutoff_hours,
            default_time_zone=config.default_facility_timezone,
        )


@dataclass(frozen=True)
class QrPolicy:
    """Signing and scan-window parameters for QR authorization tokens."""

    signing_key: str
    algorithm: str = "HS256"
    post_session_minutes: int = 30
    early_grace_minutes: int = 15
    late_grace_minutes: int = 30
    clock_skew_seconds: int = 120

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "QrPolicy":
        config = config or settings
        return cls(
            signing_key=config.qr_signing_key.get_secret_value(),
            algorithm=config.qr_algorithm,
            post_session_minutes=config.qr_post_session_minutes,
            early_grace_minutes=config.qr_early_grace_minutes,
            late_grace_minutes=config.qr_late_grace_minutes,
            clock_skew_seconds=config.qr_clock_skew_seconds,
        )


def resolve_time_window(time_input: "TimeInput", facility_zone: str) -> TimeWindow:
    """
    Turn a request's time input into the canonical UTC window.

    UTC input is taken as-is. Local input is interpreted in its own zone when
    one is given, otherwise in the facility zone. The window always carries the
    facility zone because schedules and grace windows are facility-local.
    """
    if time_input.kind == "local":
        zone = time_input.time_zone or facility_zone
        start_utc = to_utc(time_input.start_local, zone)
        end_utc = to_utc(time_input.end_local, zone)
    else:
        start_utc = ensure_utc(time_input.start)
        end_utc = ensure_utc(time_input.end)
    return TimeWindow(start_utc=start_utc, end_utc=end_utc, zone_id=facility_zone)


def ensure_window_order(window: TimeWindow) -> None:
    if window.end_utc <= window.start_utc:
        raise InadmissibleBookingException(InadmissibleReason.INVALID_WINDOW)


def ensure_create_allowed(start_utc: datetime, now: datetime, policy: BookingPolicy) -> None:
    """
    Creation horizon check.

    Raises:
        InadmissibleBookingException: PastStart when the start is not strictly
            in the future, HorizonExceeded when it lies beyond ``now + horizon``
    """
    start_utc = ensure_utc(start_utc)
    now = ensure_utc(now)
    if start_utc <= now:
        raise InadmissibleBookingException(InadmissibleReason.PAST_START)
    if start_utc > now + policy.horizon:
        raise InadmissibleBookingException(
            InadmissibleReason.HORIZON_EXCEEDED,
            f"Bookings are only allowed within {policy.horizon_days} days",
        )


def ensure_update_or_cancel_allowed(
    start_utc: datetime, now: datetime, policy: BookingPolicy
) -> None:
    """Refuse changes once the booking starts within the cutoff."""
    remaining = ensure_utc(start_utc) - ensure_utc(now)
    if remaining < policy.cutoff:
        raise TooLateToModifyException(
            required_hours=policy.cutoff_hours,
            provided_hours=remaining.total_seconds() / 3600,
        )


def ensure_schedule_well_formed(schedule: StationSchedule) -> None:
    if not schedule.is_well_formed:
        raise BadScheduleException(schedule.open_minutes, schedule.close_minutes)


def ensure_within_schedule(window: TimeWindow, schedule: Optional[StationSchedule]) -> None:
    """
    Check the window lies inside the local opening hours of its start day.

    Raises:
        InadmissibleBookingException: NoSchedule or OutsideSchedule
        BadScheduleException: Stored schedule window is malformed
    """
    if schedule is None:
        raise InadmissibleBookingException(InadmissibleReason.NO_SCHEDULE)
    ensure_schedule_well_formed(schedule)

    open_utc = to_utc(
        minutes_to_wall_clock(schedule.schedule_date, schedule.open_minutes), window.zone_id
    )
    close_utc = to_utc(
        minutes_to_wall_clock(schedule.schedule_date, schedule.close_minutes), window.zone_id
    )
    if window.start_utc < open_utc or window.end_utc > close_utc:
        logger.debug(
            "Window outside schedule",
            extra={
                "start_local": to_local(window.start_utc, window.zone_id).isoformat(),
                "end_local": to_local(window.end_utc, window.zone_id).isoformat(),
                "open_minutes": schedule.open_minutes,
                "close_minutes": schedule.close_minutes,
            },
        )
        raise InadmissibleBookingException(InadmissibleReason.OUTSIDE_SCHEDULE)
