from __future__ import annotations

from typing import Protocol
from uuid import UUID

from coursegate.models.principal import Principal
from coursegate.repos.undo_journal import record_undo


class PrincipalRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> Principal | None: ...
    async def add(self, principal: Principal) -> None: ...


class InMemoryPrincipalRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Principal] = {}

    async def get_by_id(self, user_id: UUID) -> Principal | None:
        return self._by_id.get(user_id)

    async def add(self, principal: Principal) -> None:
        if principal.user_id in self._by_id:
            raise ValueError("principal already exists")
        self._by_id[principal.user_id] = principal
        record_undo(lambda: self._by_id.pop(principal.user_id, None))
