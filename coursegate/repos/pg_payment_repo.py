"""PostgreSQL implementation of PaymentRepo."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import cast, func, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from coursegate.db.tables import PaymentRow
from coursegate.models.payment import Payment, PaymentStatus


class PgPaymentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, payment_id: UUID) -> Payment | None:
        stmt = select(PaymentRow).where(PaymentRow.id == payment_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_payment(row)

    async def get_latest_completed(
        self, user_id: UUID, course_id: UUID
    ) -> Payment | None:
        stmt = (
            select(PaymentRow)
            .where(
                PaymentRow.user_id == user_id,
                PaymentRow.course_id == course_id,
                PaymentRow.status == PaymentStatus.COMPLETED.value,
            )
            .order_by(PaymentRow.created_at.desc())
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_payment(row)

    async def merge_gateway_response(
        self, payment_id: UUID, patch: dict[str, Any]
    ) -> bool:
        """Single-statement `jsonb ||` merge; no read-modify-write window."""
        merged = func.coalesce(PaymentRow.gateway_response, cast({}, JSONB)).op("||")(
            cast(patch, JSONB)
        )
        stmt = (
            update(PaymentRow)
            .where(PaymentRow.id == payment_id)
            .values(gateway_response=merged)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        # later reads in this session must see the merged blob
        self._session.expire_all()
        return result.rowcount > 0

    async def add(self, payment: Payment) -> None:
        row = PaymentRow(
            id=payment.id,
            user_id=payment.user_id,
            course_id=payment.course_id,
            amount=payment.amount,
            currency=payment.currency,
            status=payment.status.value,
            gateway_response=dict(payment.gateway_response),
            created_at=payment.created_at,
        )
        self._session.add(row)
        await self._session.flush()


def _row_to_payment(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        amount=row.amount,
        currency=row.currency,
        status=PaymentStatus(row.status),
        created_at=row.created_at,
        gateway_response=dict(row.gateway_response or {}),
    )
