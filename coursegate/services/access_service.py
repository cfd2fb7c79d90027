"""Course access evaluation.

Answers "may this principal open this course?" with a structured
AccessDecision.  Rules are checked in a fixed order and the first match
wins:

  1. course missing                      -> NOT_FOUND
  2. no principal, or inactive principal -> NOT_AUTHENTICATED
  3. unpublished course, STUDENT         -> NOT_PUBLISHED
  4. ADMIN                               -> ADMIN_ACCESS
  5. PROFESSOR who owns the course       -> PROFESSOR_OWNS
  6. free course                         -> FREE_COURSE
  7. paid course with enrollment         -> ENROLLED
     paid course without enrollment      -> PAYMENT_REQUIRED

A PROFESSOR looking at somebody else's unpublished course is not stopped
by rule 3 and falls through to the pricing rules.

Evaluation has no side effects.  A data-store failure is logged and
reported as NOT_FOUND so a broken store never grants access.
"""

from __future__ import annotations

import logging
from uuid import UUID

from coursegate.core.metrics import ACCESS_DECISIONS
from coursegate.exceptions import CourseAccessDeniedError
from coursegate.models.principal import Principal, Role
from coursegate.models.results import AccessDecision, AccessReason
from coursegate.repos.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


async def evaluate_access(
    uow: UnitOfWork,
    course_id: UUID,
    principal: Principal | None,
) -> AccessDecision:
    try:
        decision = await _evaluate(uow, course_id, principal)
    except Exception:
        logger.exception(
            "Access evaluation failed, denying",
            extra={"course_id": str(course_id)},
        )
        decision = AccessDecision(has_access=False, reason=AccessReason.NOT_FOUND)

    ACCESS_DECISIONS.labels(reason=decision.reason.value).inc()
    logger.debug(
        "Access decision course=%s user=%s reason=%s granted=%s",
        course_id,
        principal.user_id if principal else None,
        decision.reason.value,
        decision.has_access,
        extra={
            "course_id": str(course_id),
            "user_id": str(principal.user_id) if principal else None,
            "reason": decision.reason.value,
        },
    )
    return decision


async def _evaluate(
    uow: UnitOfWork,
    course_id: UUID,
    principal: Principal | None,
) -> AccessDecision:
    course = await uow.courses.get_by_id(course_id)
    if course is None:
        return AccessDecision(has_access=False, reason=AccessReason.NOT_FOUND)

    if principal is None or not principal.is_active:
        return AccessDecision(
            has_access=False, reason=AccessReason.NOT_AUTHENTICATED, course=course
        )

    if not course.is_published and principal.is_student():
        return AccessDecision(
            has_access=False, reason=AccessReason.NOT_PUBLISHED, course=course
        )

    if principal.is_admin():
        return AccessDecision(
            has_access=True, reason=AccessReason.ADMIN_ACCESS, course=course
        )

    if principal.role is Role.PROFESSOR and principal.user_id == course.professor_id:
        return AccessDecision(
            has_access=True, reason=AccessReason.PROFESSOR_OWNS, course=course
        )

    enrollment = await uow.enrollments.get_by_user_and_course(
        principal.user_id, course.id
    )

    if course.is_free:
        return AccessDecision(
            has_access=True,
            reason=AccessReason.FREE_COURSE,
            course=course,
            enrollment=enrollment,
        )

    if enrollment is None:
        return AccessDecision(
            has_access=False, reason=AccessReason.PAYMENT_REQUIRED, course=course
        )

    payment = await uow.payments.get_latest_completed(principal.user_id, course.id)
    return AccessDecision(
        has_access=True,
        reason=AccessReason.ENROLLED,
        course=course,
        enrollment=enrollment,
        payment=payment,
    )


async def require_course_access(
    uow: UnitOfWork,
    course_id: UUID,
    principal: Principal | None,
) -> AccessDecision:
    """Like evaluate_access, but raise CourseAccessDeniedError on denial."""
    decision = await evaluate_access(uow, course_id, principal)
    if not decision.has_access:
        raise CourseAccessDeniedError(decision)
    return decision
