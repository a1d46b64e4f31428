# backend/evbooking/core/enums.py
"""
Core enums for the EV booking service.

Every enum stored or exchanged over the wire inherits from (str, Enum) so
comparisons against raw column values and JSON payloads behave the same.
"""

from enum import Enum


class ActorRole(str, Enum):
    """Roles asserted by the gateway for the calling principal."""

    OWNER = "owner"
    OPERATOR = "operator"
    BACKOFFICE = "backoffice"


class InadmissibleReason(str, Enum):
    """Why a create/update request was refused. Exactly one is reported per failure."""

    INVALID_WINDOW = "InvalidWindow"
    PAST_START = "PastStart"
    HORIZON_EXCEEDED = "HorizonExceeded"
    NO_SCHEDULE = "NoSchedule"
    OUTSIDE_SCHEDULE = "OutsideSchedule"
    FULL = "Full"
    OWNER_OVERLAP = "OwnerOverlap"


class QrFailure(str, Enum):
    """Outcome codes for a rejected QR scan."""

    INVALID_OR_EXPIRED = "InvalidOrExpired"
    MALFORMED = "Malformed"
    NOT_FOUND = "NotFound"
    NOT_APPROVED = "NotApproved"
    INACTIVE = "Inactive"
    MISMATCH = "Mismatch"
    REPLACED = "Replaced"
    OUT_OF_WINDOW = "OutOfWindow"
    ALREADY_USED = "AlreadyUsed"
