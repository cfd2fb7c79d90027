"""PostgreSQL implementation of MilestoneRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursegate.db.tables import ProgressMilestoneRow
from coursegate.models.milestone import MilestoneType, ProgressMilestone


class PgMilestoneRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, milestone: ProgressMilestone) -> None:
        row = ProgressMilestoneRow(
            id=milestone.id,
            user_id=milestone.user_id,
            course_id=milestone.course_id,
            milestone_type=milestone.milestone_type.value,
            metadata_json=dict(milestone.metadata),
            created_at=milestone.created_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def list_by_user_and_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ProgressMilestone]:
        stmt = (
            select(ProgressMilestoneRow)
            .where(
                ProgressMilestoneRow.user_id == user_id,
                ProgressMilestoneRow.course_id == course_id,
            )
            .order_by(ProgressMilestoneRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            ProgressMilestone(
                id=r.id,
                user_id=r.user_id,
                course_id=r.course_id,
                milestone_type=MilestoneType(r.milestone_type),
                created_at=r.created_at,
                metadata=dict(r.metadata_json or {}),
            )
            for r in rows
        ]
