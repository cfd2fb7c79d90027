from __future__ import annotations

from dataclasses import replace
from typing import Any, Protocol
from uuid import UUID

from coursegate.models.payment import Payment, PaymentStatus
from coursegate.repos.undo_journal import record_undo


class PaymentRepo(Protocol):
    async def get_by_id(self, payment_id: UUID) -> Payment | None: ...

    async def get_latest_completed(
        self, user_id: UUID, course_id: UUID
    ) -> Payment | None: ...

    async def merge_gateway_response(
        self, payment_id: UUID, patch: dict[str, Any]
    ) -> bool:
        """Shallow-merge `patch` into gateway_response.  False if no such payment."""
        ...

    async def add(self, payment: Payment) -> None: ...


class InMemoryPaymentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Payment] = {}

    async def get_by_id(self, payment_id: UUID) -> Payment | None:
        return self._by_id.get(payment_id)

    async def get_latest_completed(
        self, user_id: UUID, course_id: UUID
    ) -> Payment | None:
        completed = [
            p
            for p in self._by_id.values()
            if p.matches(user_id=user_id, course_id=course_id)
            and p.status is PaymentStatus.COMPLETED
        ]
        if not completed:
            return None
        return max(completed, key=lambda p: p.created_at)

    async def merge_gateway_response(
        self, payment_id: UUID, patch: dict[str, Any]
    ) -> bool:
        p = self._by_id.get(payment_id)
        if p is None:
            return False
        self._by_id[payment_id] = replace(
            p, gateway_response={**p.gateway_response, **patch}
        )

        def undo() -> None:
            self._by_id[payment_id] = p

        record_undo(undo)
        return True

    async def add(self, payment: Payment) -> None:
        if payment.id in self._by_id:
            raise ValueError("payment already exists")
        self._by_id[payment.id] = payment
        record_undo(lambda: self._by_id.pop(payment.id, None))
