"""Value objects the engine hands back to callers.

Nothing here is persisted.  API handlers and page code read these to
decide what to render or which status code to return.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from uuid import UUID

from coursegate.models.course import Course
from coursegate.models.enrollment import Enrollment
from coursegate.models.payment import Payment


class AccessReason(str, enum.Enum):
    NOT_FOUND = "not_found"
    NOT_AUTHENTICATED = "not_authenticated"
    NOT_PUBLISHED = "not_published"
    ADMIN_ACCESS = "admin_access"
    PROFESSOR_OWNS = "professor_owns"
    FREE_COURSE = "free_course"
    ENROLLED = "enrolled"
    PAYMENT_REQUIRED = "payment_required"


@dataclass(frozen=True, slots=True)
class AccessDecision:
    has_access: bool
    reason: AccessReason
    course: Course | None = None
    enrollment: Enrollment | None = None
    payment: Payment | None = None


class EligibilityReason(str, enum.Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_ROLE = "invalid_role"
    COURSE_NOT_FOUND = "course_not_found"
    COURSE_NOT_PUBLISHED = "course_not_published"
    OWN_COURSE = "own_course"
    ALREADY_ENROLLED = "already_enrolled"
    PAYMENT_REQUIRED = "payment_required"
    ELIGIBLE = "eligible"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class EnrollmentEligibility:
    can_enroll: bool
    reason: EligibilityReason


class EnrollmentCode(str, enum.Enum):
    """Machine-readable outcome of an enrollment operation."""

    # success
    ENROLLED = "enrolled"
    ALREADY_ENROLLED = "already_enrolled"
    # eligibility failures (same vocabulary as EligibilityReason)
    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_ROLE = "invalid_role"
    COURSE_NOT_FOUND = "course_not_found"
    COURSE_NOT_PUBLISHED = "course_not_published"
    OWN_COURSE = "own_course"
    PAYMENT_REQUIRED = "payment_required"
    # payment verification failures
    PAYMENT_NOT_FOUND = "payment_not_found"
    PAYMENT_NOT_COMPLETED = "payment_not_completed"
    PAYMENT_MISMATCH = "payment_mismatch"
    # infrastructure
    ENROLLMENT_FAILED = "enrollment_failed"
    ERROR = "error"

    @classmethod
    def from_eligibility(cls, reason: EligibilityReason) -> EnrollmentCode:
        if reason is EligibilityReason.ELIGIBLE:
            return cls.ENROLLED
        return cls(reason.value)


@dataclass(frozen=True, slots=True)
class EnrollmentResult:
    success: bool
    code: EnrollmentCode
    message: str
    enrollment_id: UUID | None = None
    requires_payment: bool = False
    error: str | None = None

    @property
    def created(self) -> bool:
        return self.success and self.code is EnrollmentCode.ENROLLED
