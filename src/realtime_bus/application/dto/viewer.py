from __future__ import annotations

from dataclasses import dataclass

from realtime_bus.domain.value_objects.enums import Role


@dataclass(frozen=True, slots=True)
class Viewer:
    """Signed-in user whose caches the live session keeps fresh."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_team_leader(self) -> bool:
        return self.role == Role.TEAM_LEADER
