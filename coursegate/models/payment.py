from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


@dataclass(frozen=True, slots=True)
class Payment:
    id: UUID
    user_id: UUID
    course_id: UUID
    amount: Decimal
    currency: str
    status: PaymentStatus
    created_at: datetime
    # Free-form gateway payload.  Also carries the enrollmentError /
    # enrollmentRetry markers read by operator tooling.
    gateway_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_completed(self) -> bool:
        return self.status is PaymentStatus.COMPLETED

    def matches(self, *, user_id: UUID, course_id: UUID) -> bool:
        return self.user_id == user_id and self.course_id == course_id

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        amount: Decimal,
        created_at: datetime,
        currency: str = "EGP",
        status: PaymentStatus = PaymentStatus.PENDING,
    ) -> Payment:
        return Payment(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            amount=amount,
            currency=currency,
            status=status,
            created_at=created_at,
        )
