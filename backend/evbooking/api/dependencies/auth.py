# backend/evbooking/api/dependencies/auth.py
"""
Caller identity dependencies.

Authentication happens at the gateway, which forwards the verified identity
in headers:

    X-Actor-Id        owner id (e.g. national id) or staff id
    X-Actor-Role      owner | operator | backoffice
    X-Actor-Stations  comma-separated station ids assigned to an operator
"""

import logging
from typing import Optional

from fastapi import Depends, Header

from ...core.enums import ActorRole
from ...core.exceptions import ForbiddenException, UnauthorizedException
from ...principal import ActorPrincipal

logger = logging.getLogger(__name__)


def _parse_stations(raw: Optional[str]) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


async def get_current_actor(
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role"),
    x_actor_stations: Optional[str] = Header(None, alias="X-Actor-Stations"),
) -> ActorPrincipal:
    """
    Build the calling principal from gateway headers.

    Raises:
        HTTPException: 401 if the identity headers are missing or the role is unknown
    """
    if not x_actor_id or not x_actor_id.strip() or not x_actor_role:
        raise UnauthorizedException(
            "Missing caller identity", code="MISSING_ACTOR"
        ).to_http_exception()
    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError:
        logger.warning("Rejected unknown actor role", extra={"role": x_actor_role})
        raise UnauthorizedException(
            "Unknown caller role", code="INVALID_ACTOR_ROLE", details={"role": x_actor_role}
        ).to_http_exception() from None

    return ActorPrincipal(
        actor_id=x_actor_id.strip(),
        role=role,
        station_ids=_parse_stations(x_actor_stations),
    )


async def require_owner(actor: ActorPrincipal = Depends(get_current_actor)) -> ActorPrincipal:
    if not actor.is_owner:
        raise ForbiddenException("EV owner role required", code="OWNER_ONLY").to_http_exception()
    return actor


async def require_staff(actor: ActorPrincipal = Depends(get_current_actor)) -> ActorPrincipal:
    if not actor.is_staff:
        raise ForbiddenException(
            "Operator or back-office role required", code="STAFF_ONLY"
        ).to_http_exception()
    return actor

