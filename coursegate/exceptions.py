"""Domain exceptions.

Business outcomes (denied, not found, payment required) are returned as
result values, not raised.  These cover invalid input at the write boundary,
the store-level uniqueness conflict, and the opt-in access guard.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from coursegate.models.results import AccessDecision


class CourseValidationError(ValueError):
    """Raised when course input violates a write-boundary rule."""


class EnrollmentAlreadyExistsError(Exception):
    """Raised by an enrollment store when (user_id, course_id) already exists."""

    def __init__(self, user_id: UUID, course_id: UUID):
        self.user_id = user_id
        self.course_id = course_id
        super().__init__(f"Enrollment already exists: user={user_id} course={course_id}")


class CourseAccessDeniedError(Exception):
    """Raised by require_course_access when the decision denies access."""

    def __init__(self, decision: AccessDecision):
        self.decision = decision
        super().__init__(f"Course access denied: {decision.reason.value}")
