"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursegate.db.tables import CourseRow
from coursegate.models.course import Course


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, course_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def add(self, course: Course) -> None:
        row = CourseRow(
            id=course.id,
            title=course.title,
            professor_id=course.professor_id,
            is_published=course.is_published,
            price=course.price,
            currency=course.currency,
            lesson_count=course.lesson_count,
        )
        self._session.add(row)
        await self._session.flush()


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        professor_id=row.professor_id,
        is_published=row.is_published,
        price=row.price,
        currency=row.currency,
        lesson_count=row.lesson_count,
    )
