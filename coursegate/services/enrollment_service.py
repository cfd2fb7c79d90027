"""Enrollment eligibility and creation.

Every write path re-runs the full eligibility chain; nothing a caller
checked earlier is trusted.  Repeating an enrollment is never an error:
the existing row's id comes back as a success.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from coursegate.core.metrics import ENROLLMENT_FAILURES, ENROLLMENTS_CREATED
from coursegate.exceptions import EnrollmentAlreadyExistsError
from coursegate.models.course import Course
from coursegate.models.enrollment import Enrollment
from coursegate.models.principal import Principal
from coursegate.models.results import (
    EligibilityReason,
    EnrollmentCode,
    EnrollmentEligibility,
    EnrollmentResult,
)
from coursegate.repos.unit_of_work import UnitOfWork
from coursegate.services.messages import enrollment_message

logger = logging.getLogger(__name__)


def success_result(code: EnrollmentCode, enrollment_id: UUID) -> EnrollmentResult:
    return EnrollmentResult(
        success=True,
        code=code,
        message=enrollment_message(code),
        enrollment_id=enrollment_id,
    )


def failure_result(code: EnrollmentCode, *, error: str | None = None) -> EnrollmentResult:
    ENROLLMENT_FAILURES.labels(code=code.value).inc()
    return EnrollmentResult(
        success=False,
        code=code,
        message=enrollment_message(code),
        requires_payment=code is EnrollmentCode.PAYMENT_REQUIRED,
        error=error,
    )


async def _check_eligibility(
    uow: UnitOfWork,
    course_id: UUID,
    principal: Principal | None,
) -> tuple[EligibilityReason, Course | None, Enrollment | None]:
    """Walk the eligibility chain, returning the first failing reason.

    Also hands back the course and any existing enrollment so callers
    don't load them twice.
    """
    if principal is None or not principal.is_active:
        return EligibilityReason.NOT_AUTHENTICATED, None, None

    if not principal.can_self_enroll():
        return EligibilityReason.INVALID_ROLE, None, None

    course = await uow.courses.get_by_id(course_id)
    if course is None:
        return EligibilityReason.COURSE_NOT_FOUND, None, None

    if not course.is_published:
        return EligibilityReason.COURSE_NOT_PUBLISHED, course, None

    # applies to admins too: an admin who authored the course cannot take it
    if course.professor_id == principal.user_id:
        return EligibilityReason.OWN_COURSE, course, None

    existing = await uow.enrollments.get_by_user_and_course(
        principal.user_id, course.id
    )
    if existing is not None:
        return EligibilityReason.ALREADY_ENROLLED, course, existing

    if not course.is_free:
        return EligibilityReason.PAYMENT_REQUIRED, course, None

    return EligibilityReason.ELIGIBLE, course, None


async def can_enroll(
    uow: UnitOfWork,
    course_id: UUID,
    principal: Principal | None,
) -> EnrollmentEligibility:
    try:
        reason, _, _ = await _check_eligibility(uow, course_id, principal)
    except Exception:
        logger.exception(
            "Eligibility check failed",
            extra={"course_id": str(course_id)},
        )
        return EnrollmentEligibility(can_enroll=False, reason=EligibilityReason.ERROR)

    return EnrollmentEligibility(
        can_enroll=reason is EligibilityReason.ELIGIBLE,
        reason=reason,
    )


async def _insert_or_existing(
    uow: UnitOfWork, user_id: UUID, course_id: UUID
) -> tuple[Enrollment, bool]:
    """Insert a fresh enrollment.  Returns (enrollment, created).

    A concurrent insert that won the unique constraint is not an error;
    the winner's row is returned with created=False.
    """
    enrollment = Enrollment.new(
        user_id=user_id,
        course_id=course_id,
        enrolled_at=datetime.now(UTC),
    )
    try:
        await uow.enrollments.add(enrollment)
    except EnrollmentAlreadyExistsError:
        existing = await uow.enrollments.get_by_user_and_course(user_id, course_id)
        if existing is None:
            raise
        return existing, False
    return enrollment, True


async def enroll_in_free_course(
    uow: UnitOfWork,
    course_id: UUID,
    principal: Principal | None,
) -> EnrollmentResult:
    try:
        reason, course, existing = await _check_eligibility(uow, course_id, principal)

        if reason is EligibilityReason.ALREADY_ENROLLED and existing is not None:
            return success_result(EnrollmentCode.ALREADY_ENROLLED, existing.id)

        if reason is not EligibilityReason.ELIGIBLE:
            logger.info(
                "Free enrollment refused: %s",
                reason.value,
                extra={"course_id": str(course_id), "reason": reason.value},
            )
            return failure_result(EnrollmentCode.from_eligibility(reason))

        if principal is None or course is None:
            raise RuntimeError("eligibility passed without a principal and course")
        enrollment, created = await _insert_or_existing(
            uow, principal.user_id, course.id
        )
    except Exception as exc:
        logger.exception(
            "Free enrollment failed",
            extra={"course_id": str(course_id)},
        )
        return failure_result(EnrollmentCode.ERROR, error=str(exc))

    if not created:
        return success_result(EnrollmentCode.ALREADY_ENROLLED, enrollment.id)

    ENROLLMENTS_CREATED.labels(path="free").inc()
    logger.info(
        "User %s enrolled in free course %s",
        principal.user_id,
        course.id,
        extra={
            "user_id": str(principal.user_id),
            "course_id": str(course.id),
            "enrollment_id": str(enrollment.id),
        },
    )
    return success_result(EnrollmentCode.ENROLLED, enrollment.id)


async def create_paid_enrollment(
    uow: UnitOfWork,
    course_id: UUID,
    principal: Principal | None,
    payment_id: UUID,
) -> EnrollmentResult:
    """Turn a verified, completed payment into an enrollment.

    The payment must exist, be COMPLETED and belong to exactly this
    (principal, course) pair.  A mismatch is logged at ERROR: it means
    somebody presented a payment that isn't theirs or isn't for this course.
    """
    if principal is None or not principal.is_active:
        return failure_result(EnrollmentCode.NOT_AUTHENTICATED)

    log_ctx = {
        "user_id": str(principal.user_id),
        "course_id": str(course_id),
        "payment_id": str(payment_id),
    }

    try:
        payment = await uow.payments.get_by_id(payment_id)
        if payment is None:
            logger.warning("Paid enrollment: payment not found", extra=log_ctx)
            return failure_result(EnrollmentCode.PAYMENT_NOT_FOUND)

        if not payment.is_completed:
            logger.warning(
                "Paid enrollment: payment status is %s",
                payment.status.value,
                extra=log_ctx,
            )
            return failure_result(EnrollmentCode.PAYMENT_NOT_COMPLETED)

        if not payment.matches(user_id=principal.user_id, course_id=course_id):
            logger.error(
                "Payment mismatch: payment %s belongs to user=%s course=%s",
                payment.id,
                payment.user_id,
                payment.course_id,
                extra=log_ctx,
            )
            return failure_result(EnrollmentCode.PAYMENT_MISMATCH)

        existing = await uow.enrollments.get_by_user_and_course(
            principal.user_id, course_id
        )
        if existing is not None:
            return success_result(EnrollmentCode.ALREADY_ENROLLED, existing.id)

        enrollment, created = await _insert_or_existing(
            uow, principal.user_id, course_id
        )
    except Exception as exc:
        logger.exception("Paid enrollment failed", extra=log_ctx)
        return failure_result(EnrollmentCode.ERROR, error=str(exc))

    if not created:
        return success_result(EnrollmentCode.ALREADY_ENROLLED, enrollment.id)

    ENROLLMENTS_CREATED.labels(path="paid").inc()
    logger.info(
        "Paid enrollment created",
        extra={**log_ctx, "enrollment_id": str(enrollment.id)},
    )
    return success_result(EnrollmentCode.ENROLLED, enrollment.id)


async def list_user_enrollments(
    uow: UnitOfWork,
    principal: Principal | None,
) -> dict[UUID, Enrollment]:
    """All of the principal's enrollments, keyed by course id."""
    if principal is None or not principal.is_active:
        return {}
    enrollments = await uow.enrollments.list_by_user(principal.user_id)
    return {e.course_id: e for e in enrollments}
