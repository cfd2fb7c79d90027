from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4


class MilestoneType(str, enum.Enum):
    COURSE_START = "COURSE_START"


@dataclass(frozen=True, slots=True)
class ProgressMilestone:
    """Point-in-time marker on a learner's course timeline."""

    id: UUID
    user_id: UUID
    course_id: UUID
    milestone_type: MilestoneType
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        milestone_type: MilestoneType,
        created_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> ProgressMilestone:
        return ProgressMilestone(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            milestone_type=milestone_type,
            created_at=created_at,
            metadata=dict(metadata or {}),
        )


@dataclass(frozen=True, slots=True)
class EnrollmentFailureLog:
    """Append-only record of a payment whose enrollment could not be created."""

    id: UUID
    payment_id: UUID
    error: str
    occurred_at: datetime
    resolved: bool = False
    resolved_at: datetime | None = None

    @staticmethod
    def new(*, payment_id: UUID, error: str, occurred_at: datetime) -> EnrollmentFailureLog:
        return EnrollmentFailureLog(
            id=uuid4(), payment_id=payment_id, error=error, occurred_at=occurred_at
        )
