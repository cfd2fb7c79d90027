"""Display text for access decisions and enrollment outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from coursegate.models.results import AccessDecision, AccessReason, EnrollmentCode


@dataclass(frozen=True, slots=True)
class AccessMessage:
    title: str
    description: str
    action_text: str | None = None
    action_type: str | None = None  # login|payment|enrollment|contact


def format_price(amount: Decimal, currency: str) -> str:
    """Whole amounts print without decimals: 199 EGP, 49.50 USD."""
    if amount == amount.to_integral_value():
        return f"{amount:.0f} {currency}"
    return f"{amount:.2f} {currency}"


def get_access_message(decision: AccessDecision) -> AccessMessage:
    reason = decision.reason

    if reason is AccessReason.ENROLLED:
        return AccessMessage(
            title="Welcome to the course",
            description="You can now open every lesson and track your progress.",
        )
    if reason is AccessReason.FREE_COURSE:
        return AccessMessage(
            title="Free course",
            description="This course is free and open to every signed-in user.",
            action_text="Start learning now",
            action_type="enrollment",
        )
    if reason is AccessReason.ADMIN_ACCESS:
        return AccessMessage(
            title="Administrator access",
            description="You have full access to this course as a platform administrator.",
        )
    if reason is AccessReason.PROFESSOR_OWNS:
        return AccessMessage(
            title="Your course",
            description="This is your own course. You can manage its content and follow your students.",
        )
    if reason is AccessReason.PAYMENT_REQUIRED:
        price = ""
        course = decision.course
        if course is not None and course.pricing.amount is not None:
            price = format_price(course.pricing.amount, course.pricing.currency)
        return AccessMessage(
            title="Paid course",
            description=f"This is a paid course priced at {price}. Purchase it to open the content.",
            action_text=f"Buy now for {price}",
            action_type="payment",
        )
    if reason is AccessReason.NOT_PUBLISHED:
        return AccessMessage(
            title="Course not published",
            description="This course is not available yet. Please try again later.",
        )
    if reason is AccessReason.NOT_AUTHENTICATED:
        return AccessMessage(
            title="Sign in required",
            description="Sign in first to open the course content.",
            action_text="Sign in",
            action_type="login",
        )
    return AccessMessage(
        title="Course not found",
        description="The requested course could not be found.",
    )


_ENROLLMENT_MESSAGES: dict[EnrollmentCode, str] = {
    EnrollmentCode.ENROLLED: "Enrolled successfully",
    EnrollmentCode.ALREADY_ENROLLED: "You are already enrolled in this course",
    EnrollmentCode.NOT_AUTHENTICATED: "You need to sign in first",
    EnrollmentCode.INVALID_ROLE: "Your account is not allowed to enroll in courses",
    EnrollmentCode.COURSE_NOT_FOUND: "Course not found",
    EnrollmentCode.COURSE_NOT_PUBLISHED: "This course is not available right now",
    EnrollmentCode.OWN_COURSE: "You cannot enroll in your own course",
    EnrollmentCode.PAYMENT_REQUIRED: "This is a paid course. Complete the payment first",
    EnrollmentCode.PAYMENT_NOT_FOUND: "Payment information not found",
    EnrollmentCode.PAYMENT_NOT_COMPLETED: "Payment has not been completed",
    EnrollmentCode.PAYMENT_MISMATCH: "Payment does not match this course or user",
    EnrollmentCode.ENROLLMENT_FAILED: "Enrollment could not be created. Support has been notified",
}

_FALLBACK = "Something went wrong while checking enrollment"


def enrollment_message(code: EnrollmentCode) -> str:
    return _ENROLLMENT_MESSAGES.get(code, _FALLBACK)
