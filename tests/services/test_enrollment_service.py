from __future__ import annotations

import asyncio
import logging
from uuid import UUID, uuid4

import pytest

from coursegate.exceptions import EnrollmentAlreadyExistsError
from coursegate.models.payment import PaymentStatus
from coursegate.models.principal import Role
from coursegate.models.results import EligibilityReason, EnrollmentCode
from coursegate.services import enrollment_service
from coursegate.services.enrollment_service import (
    can_enroll,
    create_paid_enrollment,
    enroll_in_free_course,
    list_user_enrollments,
)
from tests.conftest import add_course, add_payment, add_principal

# ---- eligibility chain ----


def test_can_enroll_anonymous(uow, professor) -> None:
    course = add_course(uow, professor)
    e = asyncio.run(can_enroll(uow, course.id, None))
    assert e.can_enroll is False
    assert e.reason is EligibilityReason.NOT_AUTHENTICATED


def test_can_enroll_professor_has_invalid_role(uow, professor) -> None:
    other = add_principal(uow, Role.PROFESSOR)
    course = add_course(uow, professor)
    e = asyncio.run(can_enroll(uow, course.id, other))
    assert e.reason is EligibilityReason.INVALID_ROLE


def test_can_enroll_invalid_role_checked_before_course(uow, professor) -> None:
    e = asyncio.run(can_enroll(uow, uuid4(), professor))
    assert e.reason is EligibilityReason.INVALID_ROLE


def test_can_enroll_missing_course(uow, student) -> None:
    e = asyncio.run(can_enroll(uow, uuid4(), student))
    assert e.reason is EligibilityReason.COURSE_NOT_FOUND


def test_can_enroll_unpublished(uow, professor, student) -> None:
    course = add_course(uow, professor, published=False)
    e = asyncio.run(can_enroll(uow, course.id, student))
    assert e.reason is EligibilityReason.COURSE_NOT_PUBLISHED


def test_admin_who_authored_course_cannot_enroll(uow) -> None:
    admin_author = add_principal(uow, Role.ADMIN)
    course = add_course(uow, admin_author)
    e = asyncio.run(can_enroll(uow, course.id, admin_author))
    assert e.can_enroll is False
    assert e.reason is EligibilityReason.OWN_COURSE


def test_can_enroll_paid_course_requires_payment(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    e = asyncio.run(can_enroll(uow, course.id, student))
    assert e.reason is EligibilityReason.PAYMENT_REQUIRED


@pytest.mark.parametrize("role", [Role.STUDENT, Role.ADMIN])
def test_can_enroll_free_course_eligible(uow, professor, role) -> None:
    p = add_principal(uow, role)
    course = add_course(uow, professor)
    e = asyncio.run(can_enroll(uow, course.id, p))
    assert e.can_enroll is True
    assert e.reason is EligibilityReason.ELIGIBLE


def test_can_enroll_already_enrolled(uow, professor, student) -> None:
    course = add_course(uow, professor)
    asyncio.run(enroll_in_free_course(uow, course.id, student))
    e = asyncio.run(can_enroll(uow, course.id, student))
    assert e.reason is EligibilityReason.ALREADY_ENROLLED


def test_can_enroll_store_failure_is_error(uow, professor, student) -> None:
    course = add_course(uow, professor)

    async def boom(_course_id):
        raise RuntimeError("db down")

    uow.courses.get_by_id = boom  # type: ignore[method-assign]
    e = asyncio.run(can_enroll(uow, course.id, student))
    assert e.can_enroll is False
    assert e.reason is EligibilityReason.ERROR


# ---- free enrollment ----


def test_free_enrollment_creates_fresh_record(uow, professor, student) -> None:
    course = add_course(uow, professor)
    r = asyncio.run(enroll_in_free_course(uow, course.id, student))
    assert r.success is True
    assert r.code is EnrollmentCode.ENROLLED
    assert r.created is True

    stored = asyncio.run(uow.enrollments.get_by_user_and_course(student.user_id, course.id))
    assert stored is not None
    assert stored.id == r.enrollment_id
    assert stored.progress_percent == 0
    assert stored.completed_lesson_ids == frozenset()
    assert stored.total_watch_time == 0
    assert stored.last_accessed_at is None


def test_free_enrollment_is_idempotent(uow, professor, student) -> None:
    course = add_course(uow, professor)
    first = asyncio.run(enroll_in_free_course(uow, course.id, student))
    second = asyncio.run(enroll_in_free_course(uow, course.id, student))

    assert second.success is True
    assert second.code is EnrollmentCode.ALREADY_ENROLLED
    assert second.created is False
    assert second.enrollment_id == first.enrollment_id
    assert len(asyncio.run(uow.enrollments.list_by_user(student.user_id))) == 1


@pytest.mark.parametrize(
    ("price", "published", "expected"),
    [
        ("199", True, EnrollmentCode.PAYMENT_REQUIRED),
        (None, False, EnrollmentCode.COURSE_NOT_PUBLISHED),
    ],
)
def test_free_enrollment_refusals(uow, professor, student, price, published, expected) -> None:
    course = add_course(uow, professor, price=price, published=published)
    r = asyncio.run(enroll_in_free_course(uow, course.id, student))
    assert r.success is False
    assert r.code is expected
    assert r.requires_payment is (expected is EnrollmentCode.PAYMENT_REQUIRED)
    assert r.message
    assert asyncio.run(uow.enrollments.list_by_user(student.user_id)) == []


def test_free_enrollment_own_course_for_admin(uow) -> None:
    admin_author = add_principal(uow, Role.ADMIN)
    course = add_course(uow, admin_author)
    r = asyncio.run(enroll_in_free_course(uow, course.id, admin_author))
    assert r.success is False
    assert r.code is EnrollmentCode.OWN_COURSE


def test_free_enrollment_concurrent_insert_returns_winner(uow, professor, student) -> None:
    """A duplicate that slips past the pre-check is resolved by the unique key."""
    course = add_course(uow, professor)
    winner = asyncio.run(enroll_in_free_course(uow, course.id, student))

    real_lookup = uow.enrollments.get_by_user_and_course
    lookups: list[UUID] = []

    async def first_lookup_misses(user_id, course_id):
        # first lookup misses, as if the other request hadn't committed yet
        lookups.append(course_id)
        if len(lookups) == 1:
            return None
        return await real_lookup(user_id, course_id)

    uow.enrollments.get_by_user_and_course = first_lookup_misses  # type: ignore[method-assign]

    r = asyncio.run(enroll_in_free_course(uow, course.id, student))
    assert r.success is True
    assert r.code is EnrollmentCode.ALREADY_ENROLLED
    assert r.enrollment_id == winner.enrollment_id


def test_free_enrollment_eligible_without_course_is_error(
    uow, student, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def eligible_but_empty(*_args):
        return EligibilityReason.ELIGIBLE, None, None

    monkeypatch.setattr(enrollment_service, "_check_eligibility", eligible_but_empty)
    r = asyncio.run(enroll_in_free_course(uow, uuid4(), student))
    assert r.success is False
    assert r.code is EnrollmentCode.ERROR
    assert asyncio.run(uow.enrollments.list_by_user(student.user_id)) == []


def test_in_memory_repo_rejects_duplicate(uow, professor, student) -> None:
    course = add_course(uow, professor)
    asyncio.run(enroll_in_free_course(uow, course.id, student))
    existing = asyncio.run(uow.enrollments.get_by_user_and_course(student.user_id, course.id))
    with pytest.raises(EnrollmentAlreadyExistsError):
        asyncio.run(uow.enrollments.add(existing))


# ---- paid enrollment ----


def test_paid_enrollment_with_completed_payment(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    payment = add_payment(uow, student, course)
    r = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))
    assert r.success is True
    assert r.code is EnrollmentCode.ENROLLED
    stored = asyncio.run(uow.enrollments.get_by_user_and_course(student.user_id, course.id))
    assert stored is not None and stored.id == r.enrollment_id


def test_paid_enrollment_missing_payment(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    r = asyncio.run(create_paid_enrollment(uow, course.id, student, uuid4()))
    assert r.success is False
    assert r.code is EnrollmentCode.PAYMENT_NOT_FOUND
    assert r.message == "Payment information not found"


@pytest.mark.parametrize(
    "status",
    [
        PaymentStatus.PENDING,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
        PaymentStatus.REFUNDED,
    ],
)
def test_paid_enrollment_rejects_incomplete_payment(uow, professor, student, status) -> None:
    course = add_course(uow, professor, price="199")
    payment = add_payment(uow, student, course, status=status)
    r = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))
    assert r.success is False
    assert r.code is EnrollmentCode.PAYMENT_NOT_COMPLETED
    assert asyncio.run(uow.enrollments.list_by_user(student.user_id)) == []


def test_paid_enrollment_rejects_other_users_payment(uow, professor, student, caplog) -> None:
    course = add_course(uow, professor, price="199")
    someone_else = add_principal(uow)
    payment = add_payment(uow, someone_else, course)

    with caplog.at_level(logging.ERROR):
        r = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))

    assert r.success is False
    assert r.code is EnrollmentCode.PAYMENT_MISMATCH
    assert any(rec.levelno == logging.ERROR for rec in caplog.records)
    assert asyncio.run(uow.enrollments.list_by_user(student.user_id)) == []


def test_paid_enrollment_rejects_payment_for_other_course(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    other_course = add_course(uow, professor, price="99", title="Physics")
    payment = add_payment(uow, student, other_course)
    r = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))
    assert r.code is EnrollmentCode.PAYMENT_MISMATCH


def test_paid_enrollment_is_idempotent(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    payment = add_payment(uow, student, course)
    first = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))
    second = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))
    assert second.success is True
    assert second.code is EnrollmentCode.ALREADY_ENROLLED
    assert second.enrollment_id == first.enrollment_id


def test_paid_enrollment_anonymous(uow, professor) -> None:
    course = add_course(uow, professor, price="199")
    r = asyncio.run(create_paid_enrollment(uow, course.id, None, uuid4()))
    assert r.code is EnrollmentCode.NOT_AUTHENTICATED


def test_paid_enrollment_payment_store_failure_is_error(uow, professor, student, caplog) -> None:
    course = add_course(uow, professor, price="199")
    payment = add_payment(uow, student, course)

    async def boom(_payment_id):
        raise RuntimeError("db down")

    uow.payments.get_by_id = boom  # type: ignore[method-assign]
    with caplog.at_level(logging.ERROR, logger="coursegate.services.enrollment_service"):
        r = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))

    assert r.success is False
    assert r.code is EnrollmentCode.ERROR
    assert r.error == "db down"
    assert any(rec.message == "Paid enrollment failed" for rec in caplog.records)


def test_paid_enrollment_insert_failure_is_error(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    payment = add_payment(uow, student, course)

    async def boom(_enrollment):
        raise RuntimeError("connection reset")

    uow.enrollments.add = boom  # type: ignore[method-assign]
    r = asyncio.run(create_paid_enrollment(uow, course.id, student, payment.id))
    assert r.code is EnrollmentCode.ERROR
    assert r.enrollment_id is None


# ---- listing ----


def test_list_user_enrollments_keyed_by_course(uow, professor, student) -> None:
    c1 = add_course(uow, professor, title="Course A")
    c2 = add_course(uow, professor, title="Course B")
    add_course(uow, professor, title="Course C")
    asyncio.run(enroll_in_free_course(uow, c1.id, student))
    asyncio.run(enroll_in_free_course(uow, c2.id, student))

    by_course = asyncio.run(list_user_enrollments(uow, student))
    assert set(by_course) == {c1.id, c2.id}
    assert all(e.user_id == student.user_id for e in by_course.values())


def test_list_user_enrollments_anonymous_is_empty(uow) -> None:
    assert asyncio.run(list_user_enrollments(uow, None)) == {}
