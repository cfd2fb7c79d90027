from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One principal's seat in one course.  Unique per (user_id, course_id)."""

    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: datetime
    progress_percent: int = 0  # 0..100
    completed_lesson_ids: frozenset[UUID] = frozenset()
    total_watch_time: int = 0  # seconds
    last_accessed_at: datetime | None = None

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID, enrolled_at: datetime) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            enrolled_at=enrolled_at,
        )
