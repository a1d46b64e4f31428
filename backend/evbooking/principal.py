"""Principal abstraction for callers identified by the upstream gateway."""

from __future__ import annotations

from dataclasses import dataclass, field

from .core.enums import ActorRole


@dataclass(frozen=True)
class ActorPrincipal:
    """Authenticated caller: an EV owner, a station operator or back-office staff."""

    actor_id: str
    role: ActorRole
    station_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def id(self) -> str:
        return self.actor_id

    @property
    def is_owner(self) -> bool:
        return self.role == ActorRole.OWNER

    @property
    def is_staff(self) -> bool:
        return self.role in (ActorRole.OPERATOR, ActorRole.BACKOFFICE)

    def can_operate(self, station_id: str) -> bool:
        """Back-office may act on every station; operators only on their assigned ones."""
        if self.role == ActorRole.BACKOFFICE:
            return True
        return self.role == ActorRole.OPERATOR and station_id in self.station_ids
