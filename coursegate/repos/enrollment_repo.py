from __future__ import annotations

from typing import Protocol
from uuid import UUID

from coursegate.exceptions import EnrollmentAlreadyExistsError
from coursegate.models.enrollment import Enrollment
from coursegate.repos.undo_journal import record_undo


class EnrollmentRepo(Protocol):
    async def get_by_user_and_course(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None: ...

    async def add(self, enrollment: Enrollment) -> None:
        """Insert, raising EnrollmentAlreadyExistsError on a (user, course) clash."""
        ...

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    """Keyed by (user_id, course_id), so the uniqueness rule is structural."""

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Enrollment] = {}

    async def get_by_user_and_course(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        return self._store.get((user_id, course_id))

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.user_id, enrollment.course_id)
        if key in self._store:
            raise EnrollmentAlreadyExistsError(enrollment.user_id, enrollment.course_id)
        self._store[key] = enrollment
        record_undo(lambda: self._store.pop(key, None))

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        found = [e for (uid, _), e in self._store.items() if uid == user_id]
        return sorted(found, key=lambda e: e.enrolled_at, reverse=True)
