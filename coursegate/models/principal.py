from __future__ import annotations

import enum
from dataclasses import dataclass
from uuid import UUID


class Role(str, enum.Enum):
    STUDENT = "STUDENT"
    PROFESSOR = "PROFESSOR"
    ADMIN = "ADMIN"


# Roles allowed to start an enrollment themselves.  Admins may enroll for
# testing; professors manage courses rather than take them.
ENROLLING_ROLES = frozenset({Role.STUDENT, Role.ADMIN})


@dataclass(frozen=True, slots=True)
class Principal:
    """The acting user, resolved by the HTTP layer and passed in explicitly.

    The engine never looks up a session on its own; whatever the caller
    hands over is what gets evaluated.
    """

    user_id: UUID
    role: Role
    is_active: bool = True

    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    def can_self_enroll(self) -> bool:
        return self.role in ENROLLING_ROLES
