"""Payment-completion -> enrollment bridge.

Called when a payment reaches COMPLETED (gateway webhook, admin action or
a retry).  The enrollment and its COURSE_START milestone are written in
one transaction; either both exist afterwards or neither does.

When the write fails the payment is flagged for manual review in two
places:

  - an `enrollmentError` key merged into the payment's gateway_response,
    which the existing payment tooling already reads
  - an EnrollmentFailureLog row, which operators can list directly

retry_failed_enrollment() clears the first and resolves the second.
Redelivered events are harmless: an existing enrollment is a success.

The COURSE_START milestone metadata carries paymentId, enrollmentId,
courseTitle and amount.  amount is the payment's Decimal rendered as a
string, not a JSON number, so JSONB keeps it exact.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from coursegate.core.metrics import ENROLLMENTS_CREATED
from coursegate.exceptions import EnrollmentAlreadyExistsError
from coursegate.models.enrollment import Enrollment
from coursegate.models.milestone import (
    EnrollmentFailureLog,
    MilestoneType,
    ProgressMilestone,
)
from coursegate.models.results import EnrollmentCode, EnrollmentResult
from coursegate.repos.unit_of_work import UnitOfWork
from coursegate.services.enrollment_service import failure_result, success_result

logger = logging.getLogger(__name__)


async def create_enrollment_from_payment(
    uow: UnitOfWork, payment_id: UUID
) -> EnrollmentResult:
    log_ctx = {"payment_id": str(payment_id)}
    try:
        payment = await uow.payments.get_by_id(payment_id)
        if payment is None:
            logger.warning("Payment not found", extra=log_ctx)
            return failure_result(EnrollmentCode.PAYMENT_NOT_FOUND)

        log_ctx.update(user_id=str(payment.user_id), course_id=str(payment.course_id))

        course = await uow.courses.get_by_id(payment.course_id)
        if course is None:
            logger.warning("Course for payment not found", extra=log_ctx)
            return failure_result(EnrollmentCode.COURSE_NOT_FOUND)

        if not payment.is_completed:
            logger.warning(
                "Payment not completed (status=%s)", payment.status.value, extra=log_ctx
            )
            return failure_result(EnrollmentCode.PAYMENT_NOT_COMPLETED)

        if not course.is_published:
            logger.warning("Course for payment is not published", extra=log_ctx)
            return failure_result(EnrollmentCode.COURSE_NOT_PUBLISHED)

        existing = await uow.enrollments.get_by_user_and_course(
            payment.user_id, payment.course_id
        )
        if existing is not None:
            logger.info(
                "Payment already converted to enrollment %s",
                existing.id,
                extra={**log_ctx, "enrollment_id": str(existing.id)},
            )
            return success_result(EnrollmentCode.ALREADY_ENROLLED, existing.id)

        now = datetime.now(UTC)
        enrollment = Enrollment.new(
            user_id=payment.user_id,
            course_id=payment.course_id,
            enrolled_at=now,
        )
        milestone = ProgressMilestone.new(
            user_id=payment.user_id,
            course_id=payment.course_id,
            milestone_type=MilestoneType.COURSE_START,
            created_at=now,
            metadata={
                "paymentId": str(payment.id),
                "enrollmentId": str(enrollment.id),
                "courseTitle": course.title,
                "amount": str(payment.amount),
            },
        )

        try:
            async with uow.transaction():
                await uow.enrollments.add(enrollment)
                await uow.milestones.add(milestone)
        except EnrollmentAlreadyExistsError:
            # lost a race against a redelivered event
            winner = await uow.enrollments.get_by_user_and_course(
                payment.user_id, payment.course_id
            )
            if winner is None:
                raise
            return success_result(EnrollmentCode.ALREADY_ENROLLED, winner.id)

    except Exception as exc:
        logger.exception("Enrollment from payment failed", extra=log_ctx)
        await handle_enrollment_failure(uow, payment_id, str(exc))
        return failure_result(EnrollmentCode.ENROLLMENT_FAILED, error=str(exc))

    ENROLLMENTS_CREATED.labels(path="payment_event").inc()
    logger.info(
        "Enrollment created from payment",
        extra={**log_ctx, "enrollment_id": str(enrollment.id)},
    )
    return success_result(EnrollmentCode.ENROLLED, enrollment.id)


async def handle_enrollment_failure(
    uow: UnitOfWork, payment_id: UUID, error: str
) -> None:
    """Flag the payment for manual review.  Never raises."""
    now = datetime.now(UTC)
    marker = {
        "enrollmentError": {
            "error": error,
            "timestamp": now.isoformat(),
            "requiresManualReview": True,
        }
    }
    try:
        async with uow.transaction():
            found = await uow.payments.merge_gateway_response(payment_id, marker)
            if not found:
                logger.warning(
                    "Cannot flag missing payment for review",
                    extra={"payment_id": str(payment_id)},
                )
            await uow.failures.add(
                EnrollmentFailureLog.new(
                    payment_id=payment_id, error=error, occurred_at=now
                )
            )
    except Exception:
        logger.exception(
            "Failed to record enrollment failure",
            extra={"payment_id": str(payment_id)},
        )


async def retry_failed_enrollment(
    uow: UnitOfWork, payment_id: UUID
) -> EnrollmentResult:
    """Re-run the bridge for a flagged payment and clear its markers on success."""
    result = await create_enrollment_from_payment(uow, payment_id)
    if not result.success:
        logger.warning(
            "Enrollment retry failed: %s",
            result.code.value,
            extra={"payment_id": str(payment_id)},
        )
        return result

    now = datetime.now(UTC)
    log_ctx = {"payment_id": str(payment_id), "enrollment_id": str(result.enrollment_id)}
    # the enrollment stands even if the bookkeeping below fails
    try:
        async with uow.transaction():
            await uow.payments.merge_gateway_response(
                payment_id,
                {
                    "enrollmentError": None,
                    "enrollmentRetry": {"retriedAt": now.isoformat(), "success": True},
                },
            )
            resolved = await uow.failures.resolve_for_payment(payment_id, now)
    except Exception:
        logger.exception(
            "Enrollment retry succeeded but failure markers were not cleared",
            extra=log_ctx,
        )
        return result

    logger.info(
        "Enrollment retry succeeded, %d failure entries resolved",
        resolved,
        extra=log_ctx,
    )
    return result


async def list_unresolved_failures(uow: UnitOfWork) -> list[EnrollmentFailureLog]:
    return await uow.failures.list_unresolved()
