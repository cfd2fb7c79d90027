from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

from coursegate.models.milestone import EnrollmentFailureLog
from coursegate.repos.undo_journal import record_undo


class EnrollmentFailureRepo(Protocol):
    async def add(self, entry: EnrollmentFailureLog) -> None: ...
    async def list_unresolved(self) -> list[EnrollmentFailureLog]: ...
    async def list_by_payment(self, payment_id: UUID) -> list[EnrollmentFailureLog]: ...
    async def resolve_for_payment(self, payment_id: UUID, resolved_at: datetime) -> int:
        """Mark every open entry for the payment resolved.  Returns the count."""
        ...


class InMemoryEnrollmentFailureRepo:
    def __init__(self) -> None:
        self._items: list[EnrollmentFailureLog] = []

    async def add(self, entry: EnrollmentFailureLog) -> None:
        self._items.append(entry)
        record_undo(lambda: self._items.remove(entry))

    async def list_unresolved(self) -> list[EnrollmentFailureLog]:
        return sorted(
            (e for e in self._items if not e.resolved), key=lambda e: e.occurred_at
        )

    async def list_by_payment(self, payment_id: UUID) -> list[EnrollmentFailureLog]:
        return [e for e in self._items if e.payment_id == payment_id]

    async def resolve_for_payment(self, payment_id: UUID, resolved_at: datetime) -> int:
        count = 0
        for i, e in enumerate(self._items):
            if e.payment_id == payment_id and not e.resolved:
                resolved = replace(e, resolved=True, resolved_at=resolved_at)
                self._items[i] = resolved
                record_undo(self._reopen(resolved, e))
                count += 1
        return count

    def _reopen(
        self, resolved: EnrollmentFailureLog, original: EnrollmentFailureLog
    ) -> Callable[[], None]:
        def undo() -> None:
            self._items[self._items.index(resolved)] = original

        return undo
