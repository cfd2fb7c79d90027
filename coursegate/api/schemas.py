"""Response bodies and the result-code -> HTTP status table."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi import HTTPException, Response, status
from pydantic import BaseModel

from coursegate.models.enrollment import Enrollment
from coursegate.models.milestone import EnrollmentFailureLog
from coursegate.models.results import AccessDecision, EnrollmentCode, EnrollmentResult
from coursegate.services.messages import get_access_message

FAILURE_STATUS: dict[EnrollmentCode, int] = {
    EnrollmentCode.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    EnrollmentCode.INVALID_ROLE: status.HTTP_403_FORBIDDEN,
    EnrollmentCode.OWN_COURSE: status.HTTP_403_FORBIDDEN,
    EnrollmentCode.COURSE_NOT_PUBLISHED: status.HTTP_403_FORBIDDEN,
    EnrollmentCode.COURSE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    EnrollmentCode.PAYMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    EnrollmentCode.PAYMENT_REQUIRED: status.HTTP_402_PAYMENT_REQUIRED,
    EnrollmentCode.PAYMENT_NOT_COMPLETED: status.HTTP_409_CONFLICT,
    EnrollmentCode.PAYMENT_MISMATCH: status.HTTP_409_CONFLICT,
}


class CourseOut(BaseModel):
    id: str
    title: str
    is_published: bool
    is_free: bool
    price: Decimal | None
    currency: str


class MessageOut(BaseModel):
    title: str
    description: str
    action_text: str | None = None
    action_type: str | None = None


class AccessDecisionOut(BaseModel):
    has_access: bool
    reason: str
    message: MessageOut
    course: CourseOut | None = None
    enrollment_id: str | None = None
    payment_id: str | None = None

    @classmethod
    def from_decision(cls, decision: AccessDecision) -> AccessDecisionOut:
        msg = get_access_message(decision)
        course = decision.course
        return cls(
            has_access=decision.has_access,
            reason=decision.reason.value,
            message=MessageOut(
                title=msg.title,
                description=msg.description,
                action_text=msg.action_text,
                action_type=msg.action_type,
            ),
            course=(
                CourseOut(
                    id=str(course.id),
                    title=course.title,
                    is_published=course.is_published,
                    is_free=course.is_free,
                    price=course.pricing.amount,
                    currency=course.currency,
                )
                if course is not None
                else None
            ),
            enrollment_id=str(decision.enrollment.id) if decision.enrollment else None,
            payment_id=str(decision.payment.id) if decision.payment else None,
        )


class EligibilityOut(BaseModel):
    can_enroll: bool
    reason: str


class EnrollmentResultOut(BaseModel):
    success: bool
    code: str
    message: str
    enrollment_id: str | None = None


class EnrollmentOut(BaseModel):
    id: str
    course_id: str
    enrolled_at: datetime
    progress_percent: int
    completed_lessons: int
    total_watch_time: int
    last_accessed_at: datetime | None = None

    @classmethod
    def from_enrollment(cls, e: Enrollment) -> EnrollmentOut:
        return cls(
            id=str(e.id),
            course_id=str(e.course_id),
            enrolled_at=e.enrolled_at,
            progress_percent=e.progress_percent,
            completed_lessons=len(e.completed_lesson_ids),
            total_watch_time=e.total_watch_time,
            last_accessed_at=e.last_accessed_at,
        )


class FailureLogOut(BaseModel):
    id: str
    payment_id: str
    error: str
    occurred_at: datetime

    @classmethod
    def from_entry(cls, entry: EnrollmentFailureLog) -> FailureLogOut:
        return cls(
            id=str(entry.id),
            payment_id=str(entry.payment_id),
            error=entry.error,
            occurred_at=entry.occurred_at,
        )


def enrollment_response(result: EnrollmentResult, response: Response) -> EnrollmentResultOut:
    """Translate an engine result: 201 created, 200 repeat, or raise the mapped error."""
    if not result.success:
        raise HTTPException(
            status_code=FAILURE_STATUS.get(
                result.code, status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail={
                "code": result.code.value,
                "message": result.message,
                "requires_payment": result.requires_payment,
            },
        )
    response.status_code = (
        status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    )
    return EnrollmentResultOut(
        success=True,
        code=result.code.value,
        message=result.message,
        enrollment_id=str(result.enrollment_id),
    )
