# backend/evbooking/services/qr_token_service.py
"""
QR authorization token issuing.

Tokens are compact HS256 JWTs so the rendered QR code stays small. Claims:

    bid  booking id
    sid  station id
    oid  owner id
    st   session start, ISO-8601 UTC
    et   session end, ISO-8601 UTC
    jti  random id; only the latest one is stored on the booking
    iat  issue time
    exp  session end plus the post-session allowance
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Any, Dict, Optional, cast
import uuid

import jwt

from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking
from .base import Clock, utc_now
from .booking_rules import QrPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedQrToken:
    token: str
    jti: str
    issued_at: datetime
    expires_at: datetime


class QrTokenService:
    """Mints signed QR tokens for bookings."""

    def __init__(self, policy: Optional[QrPolicy] = None, clock: Optional[Clock] = None):
        self.policy = policy or QrPolicy.from_settings()
        self._clock = clock or utc_now

    def build_claims(self, booking: Booking, jti: str, issued_at: datetime) -> Dict[str, Any]:
        start_utc = ensure_utc(booking.start_utc)
        end_utc = ensure_utc(booking.end_utc)
        return {
            "bid": booking.id,
            "sid": booking.station_id,
            "oid": booking.owner_id,
            "st": start_utc.isoformat(),
            "et": end_utc.isoformat(),
            "jti": jti,
            "iat": issued_at,
            "exp": end_utc + timedelta(minutes=self.policy.post_session_minutes),
        }

    def issue(self, booking: Booking) -> IssuedQrToken:
        """
        Mint a fresh token for ``booking``.

        Args:
            booking: Booking with id, station, owner and window populated

        Returns:
            IssuedQrToken with the encoded token and its jti/timestamps
        """
        issued_at = ensure_utc(self._clock()).replace(microsecond=0)
        jti = uuid.uuid4().hex
        claims = self.build_claims(booking, jti, issued_at)

        token = cast(
            str,
            jwt.encode(claims, self.policy.signing_key, algorithm=self.policy.algorithm),
        )

        logger.info(
            "Issued QR token",
            extra={"booking_id": booking.id, "jti": jti, "expires_at": claims["exp"].isoformat()},
        )
        return IssuedQrToken(
            token=token,
            jti=jti,
            issued_at=issued_at,
            expires_at=claims["exp"],
        )

    def apply(self, booking: Booking) -> IssuedQrToken:
        """Issue a token and store it on the booking, replacing any previous jti."""
        issued = self.issue(booking)
        booking.qr_token = issued.token
        booking.qr_jti = issued.jti
        booking.qr_issued_at = issued.issued_at
        booking.qr_expires_at = issued.expires_at
        return issued
