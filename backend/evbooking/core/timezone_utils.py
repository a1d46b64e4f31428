"""
Timezone utilities for the EV booking service.

Bookings are stored and compared as UTC instants; schedules and QR grace
windows are evaluated in the facility's local wall-clock time. Every helper
takes the zone id explicitly so multi-facility deployments never depend on a
hidden default.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Tuple

import pytz

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class TimeWindow:
    """Canonical booking window: aware UTC bounds plus the facility zone id."""

    start_utc: datetime
    end_utc: datetime
    zone_id: str

    @property
    def local_date(self) -> date:
        """Local calendar day the window starts on."""
        return to_local(self.start_utc, self.zone_id).date()


@lru_cache(maxsize=256)
def get_zone(zone_id: str) -> pytz.BaseTzInfo:
    """
    Resolve an IANA zone id.

    Raises:
        ConfigurationError: If the zone id is unknown
    """
    if not zone_id:
        raise ConfigurationError("Time zone id is required")
    try:
        return pytz.timezone(zone_id)
    except pytz.UnknownTimeZoneError:
        raise ConfigurationError(
            f"Unknown time zone: {zone_id}", details={"time_zone": zone_id}
        ) from None


def ensure_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime; naive input is taken to already be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(instant_utc: datetime, zone_id: str) -> datetime:
    """
    Convert a UTC instant to naive local wall-clock time in ``zone_id``.

    Args:
        instant_utc: Aware instant (naive values are assumed UTC)
        zone_id: IANA zone id of the facility

    Returns:
        Naive datetime expressing the local wall clock
    """
    zone = get_zone(zone_id)
    return ensure_utc(instant_utc).astimezone(zone).replace(tzinfo=None)


def to_utc(wall_clock: datetime, zone_id: str) -> datetime:
    """
    Convert a local wall-clock time in ``zone_id`` to an aware UTC instant.

    Ambiguous wall times (DST fall-back) resolve to the standard-time offset
    and skipped wall times are shifted by the zone's normalization rules.
    """
    zone = get_zone(zone_id)
    if wall_clock.tzinfo is not None:
        wall_clock = wall_clock.replace(tzinfo=None)
    localized = zone.normalize(zone.localize(wall_clock, is_dst=False))
    return localized.astimezone(timezone.utc)


def minutes_to_wall_clock(day: date, minutes: int) -> datetime:
    """Local wall clock for a minute-of-day offset; 1440 maps to next midnight."""
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def local_day_bounds(day: date, zone_id: str) -> Tuple[datetime, datetime]:
    """UTC instants of local midnight on ``day`` and the following midnight."""
    start = to_utc(datetime.combine(day, time.min), zone_id)
    end = to_utc(datetime.combine(day + timedelta(days=1), time.min), zone_id)
    return start, end
