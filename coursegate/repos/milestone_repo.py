from __future__ import annotations

from typing import Protocol
from uuid import UUID

from coursegate.models.milestone import ProgressMilestone
from coursegate.repos.undo_journal import record_undo


class MilestoneRepo(Protocol):
    async def add(self, milestone: ProgressMilestone) -> None: ...
    async def list_by_user_and_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressMilestone]: ...


class InMemoryMilestoneRepo:
    def __init__(self) -> None:
        self._items: list[ProgressMilestone] = []

    async def add(self, milestone: ProgressMilestone) -> None:
        self._items.append(milestone)
        record_undo(lambda: self._items.remove(milestone))

    async def list_by_user_and_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressMilestone]:
        return [
            m for m in self._items if m.user_id == user_id and m.course_id == course_id
        ]
