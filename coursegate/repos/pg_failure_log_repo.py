"""PostgreSQL implementation of EnrollmentFailureRepo."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coursegate.db.tables import EnrollmentFailureLogRow
from coursegate.models.milestone import EnrollmentFailureLog


class PgEnrollmentFailureRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, entry: EnrollmentFailureLog) -> None:
        self._session.add(
            EnrollmentFailureLogRow(
                id=entry.id,
                payment_id=entry.payment_id,
                error=entry.error,
                occurred_at=entry.occurred_at,
                resolved=entry.resolved,
                resolved_at=entry.resolved_at,
            )
        )
        await self._session.flush()

    async def list_unresolved(self) -> list[EnrollmentFailureLog]:
        stmt = (
            select(EnrollmentFailureLogRow)
            .where(EnrollmentFailureLogRow.resolved.is_(False))
            .order_by(EnrollmentFailureLogRow.occurred_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_entry(r) for r in rows]

    async def list_by_payment(self, payment_id: UUID) -> list[EnrollmentFailureLog]:
        stmt = (
            select(EnrollmentFailureLogRow)
            .where(EnrollmentFailureLogRow.payment_id == payment_id)
            .order_by(EnrollmentFailureLogRow.occurred_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_entry(r) for r in rows]

    async def resolve_for_payment(self, payment_id: UUID, resolved_at: datetime) -> int:
        stmt = (
            update(EnrollmentFailureLogRow)
            .where(EnrollmentFailureLogRow.payment_id == payment_id)
            .where(EnrollmentFailureLogRow.resolved.is_(False))
            .values(resolved=True, resolved_at=resolved_at)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount


def _row_to_entry(row: EnrollmentFailureLogRow) -> EnrollmentFailureLog:
    return EnrollmentFailureLog(
        id=row.id,
        payment_id=row.payment_id,
        error=row.error,
        occurred_at=row.occurred_at,
        resolved=row.resolved,
        resolved_at=row.resolved_at,
    )
