# backend/evbooking/services/qr_validator.py
"""
QR token validation at the point of use.

Checks run in a fixed order and stop at the first failure:

1. signature, structure and expiry (with clock-skew leeway)
2. required claims present
3. booking exists
4. booking approved and its authorization active
5. station/owner claims match the live booking, jti is the current one
6. now lies within the local grace window around the session

Validation never writes. Marking the token spent is the caller's job
(``BookingService.validate_and_consume_qr``), done with a conditional update
so concurrent scans cannot both succeed.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional

import jwt

from ..core.enums import QrFailure
from ..core.exceptions import QrValidationException
from ..core.timezone_utils import ensure_utc, to_local
from ..models.booking import Booking, BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from .base import Clock, utc_now
from .booking_rules import QrPolicy

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("bid", "sid", "oid", "jti")


def _same(left: Optional[str], right: Optional[str]) -> bool:
    return (left or "").casefold() == (right or "").casefold()


class QrValidator:
    """Validates presented QR tokens against the booking store."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        policy: Optional[QrPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        self.booking_repository = booking_repository
        self.policy = policy or QrPolicy.from_settings()
        self._clock = clock or utc_now

    def _fail(self, failure: QrFailure, message: str, **context: Any) -> QrValidationException:
        prometheus_metrics.record_qr_validation(failure.value)
        logger.info(
            "QR validation failed", extra={"failure": failure.value, **context}
        )
        return QrValidationException(failure, message)

    def decode(self, token: str, now: datetime) -> Dict[str, Any]:
        if not token or not token.strip():
            raise self._fail(QrFailure.MALFORMED, "Missing token")
        try:
            claims: Dict[str, Any] = jwt.decode(
                token.strip(),
                self.policy.signing_key,
                algorithms=[self.policy.algorithm],
                options={"require": ["exp"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as e:
            raise self._fail(
                QrFailure.INVALID_OR_EXPIRED,
                "Invalid or expired token",
                error_type=type(e).__name__,
            ) from None

        try:
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        except (TypeError, ValueError):
            raise self._fail(QrFailure.INVALID_OR_EXPIRED, "Invalid or expired token") from None
        if now > expires_at + timedelta(seconds=self.policy.clock_skew_seconds):
            raise self._fail(
                QrFailure.INVALID_OR_EXPIRED,
                "Invalid or expired token",
                expired_at=expires_at.isoformat(),
            )

        if any(not claims.get(name) for name in REQUIRED_CLAIMS):
            raise self._fail(QrFailure.MALFORMED, "Malformed token")
        return claims

    def validate(self, token: str, now: Optional[datetime] = None) -> Booking:
        """
        Validate a scanned token.

        Args:
            token: Encoded QR token
            now: Scan instant; defaults to the injected clock

        Returns:
            The booking the token authorizes

        Raises:
            QrValidationException: With the first failing check's ``failure``
        """
        now = ensure_utc(now or self._clock())
        claims = self.decode(token, now)
        booking_id = str(claims["bid"])

        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise self._fail(QrFailure.NOT_FOUND, "Booking not found", booking_id=booking_id)

        if booking.status != BookingStatus.APPROVED.value:
            raise self._fail(
                QrFailure.NOT_APPROVED,
                "Booking is not approved",
                booking_id=booking_id,
                status=booking.status,
            )

        if not booking.is_auth_active:
            if booking.is_consumed:
                raise self._fail(
                    QrFailure.ALREADY_USED, "QR has already been used", booking_id=booking_id
                )
            raise self._fail(QrFailure.INACTIVE, "QR is inactive", booking_id=booking_id)

        if not _same(booking.station_id, str(claims["sid"])):
            raise self._fail(QrFailure.MISMATCH, "Station mismatch", booking_id=booking_id)
        if not _same(booking.owner_id, str(claims["oid"])):
            raise self._fail(QrFailure.MISMATCH, "Owner mismatch", booking_id=booking_id)
        if not _same(booking.qr_jti, str(claims["jti"])):
            raise self._fail(QrFailure.REPLACED, "QR invalid or replaced", booking_id=booking_id)

        now_local = to_local(now, booking.time_zone)
        window_start = to_local(booking.start_utc, booking.time_zone) - timedelta(
            minutes=self.policy.early_grace_minutes
        )
        window_end = to_local(booking.end_utc, booking.time_zone) + timedelta(
            minutes=self.policy.late_grace_minutes
        )
        if now_local < window_start or now_local > window_end:
            raise self._fail(
                QrFailure.OUT_OF_WINDOW,
                "QR not valid at this time",
                booking_id=booking_id,
                now_local=now_local.isoformat(),
            )

        return booking
