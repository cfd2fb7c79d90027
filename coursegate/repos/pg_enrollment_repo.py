"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursegate.db.tables import EnrollmentRow
from coursegate.exceptions import EnrollmentAlreadyExistsError
from coursegate.models.enrollment import Enrollment

_UNIQUE_USER_COURSE = "uq_enrollments_user_course"


class PgEnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_user_and_course(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.user_id == user_id,
            EnrollmentRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def add(self, enrollment: Enrollment) -> None:
        """Insert inside a SAVEPOINT so a unique violation leaves the session usable."""
        row = EnrollmentRow(
            id=enrollment.id,
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            enrolled_at=enrollment.enrolled_at,
            progress_percent=enrollment.progress_percent,
            completed_lesson_ids=sorted(enrollment.completed_lesson_ids),
            total_watch_time=enrollment.total_watch_time,
            last_accessed_at=enrollment.last_accessed_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            if _UNIQUE_USER_COURSE not in str(exc.orig):
                raise
            raise EnrollmentAlreadyExistsError(
                enrollment.user_id, enrollment.course_id
            ) from None

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.user_id == user_id)
            .order_by(EnrollmentRow.enrolled_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        progress_percent=row.progress_percent,
        completed_lesson_ids=frozenset(row.completed_lesson_ids or ()),
        total_watch_time=row.total_watch_time,
        last_accessed_at=row.last_accessed_at,
    )
