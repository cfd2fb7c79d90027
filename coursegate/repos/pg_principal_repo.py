"""PostgreSQL implementation of PrincipalRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursegate.db.tables import UserRow
from coursegate.models.principal import Principal, Role


class PgPrincipalRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> Principal | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Principal(user_id=row.id, role=Role(row.role), is_active=row.is_active)

    async def add(self, principal: Principal) -> None:
        self._session.add(
            UserRow(
                id=principal.user_id,
                role=principal.role.value,
                is_active=principal.is_active,
            )
        )
        await self._session.flush()
