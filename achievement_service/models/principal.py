from __future__ import annotations

from dataclasses import dataclass

# Roles that may act on another learner's progress.
ELEVATED_ROLES = frozenset({"admin", "instructor"})


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from a validated JWT.

    user_id: subject claim, doubles as the learner id for self-service calls
    roles: learner|instructor|admin
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str] | frozenset[str]) -> bool:
        return bool(self.roles & roles)

    def is_admin(self) -> bool:
        return "admin" in self.roles

    def is_elevated(self) -> bool:
        return self.has_any_role(ELEVATED_ROLES)

    def can_act_for(self, learner_id: str) -> bool:
        return learner_id == self.user_id or self.is_elevated()
