from __future__ import annotations

import asyncio
import contextvars
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from coursegate.models.enrollment import Enrollment
from coursegate.models.milestone import EnrollmentFailureLog, MilestoneType, ProgressMilestone
from coursegate.repos.unit_of_work import InMemoryUnitOfWork
from tests.conftest import add_course, add_payment


def _enrollment(user_id=None, course_id=None, *, age=timedelta(0)) -> Enrollment:
    return Enrollment.new(
        user_id=user_id or uuid4(),
        course_id=course_id or uuid4(),
        enrolled_at=datetime.now(UTC) - age,
    )


def test_list_by_user_newest_first() -> None:
    uow = InMemoryUnitOfWork()
    user = uuid4()
    old = _enrollment(user, age=timedelta(days=2))
    new = _enrollment(user)
    asyncio.run(uow.enrollments.add(old))
    asyncio.run(uow.enrollments.add(new))
    asyncio.run(uow.enrollments.add(_enrollment()))

    assert asyncio.run(uow.enrollments.list_by_user(user)) == [new, old]


def test_transaction_rolls_back_enrollment_and_milestone() -> None:
    uow = InMemoryUnitOfWork()
    e = _enrollment()

    async def failing_unit() -> None:
        async with uow.transaction():
            await uow.enrollments.add(e)
            await uow.milestones.add(
                ProgressMilestone.new(
                    user_id=e.user_id,
                    course_id=e.course_id,
                    milestone_type=MilestoneType.COURSE_START,
                    created_at=e.enrolled_at,
                )
            )
            raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        asyncio.run(failing_unit())

    assert asyncio.run(uow.enrollments.get_by_user_and_course(e.user_id, e.course_id)) is None
    assert asyncio.run(uow.milestones.list_by_user_and_course(e.user_id, e.course_id)) == []


def test_transaction_commits_on_success() -> None:
    uow = InMemoryUnitOfWork()
    e = _enrollment()

    async def unit() -> None:
        async with uow.transaction():
            await uow.enrollments.add(e)

    asyncio.run(unit())
    assert asyncio.run(uow.enrollments.get_by_user_and_course(e.user_id, e.course_id)) == e


def test_rollback_keeps_rows_written_by_another_writer() -> None:
    uow = InMemoryUnitOfWork()
    ours, theirs = _enrollment(), _enrollment()

    async def unit() -> None:
        async with uow.transaction():
            await uow.enrollments.add(ours)
            await asyncio.create_task(
                uow.enrollments.add(theirs), context=contextvars.Context()
            )
            raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        asyncio.run(unit())

    lookup = uow.enrollments.get_by_user_and_course
    assert asyncio.run(lookup(ours.user_id, ours.course_id)) is None
    assert asyncio.run(lookup(theirs.user_id, theirs.course_id)) == theirs


def test_rollback_undoes_payment_merge_and_failure_writes(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    payment = add_payment(uow, student, course)
    now = datetime.now(UTC)
    open_entry = EnrollmentFailureLog.new(payment_id=payment.id, error="old", occurred_at=now)
    asyncio.run(uow.failures.add(open_entry))

    async def unit() -> None:
        async with uow.transaction():
            await uow.payments.merge_gateway_response(payment.id, {"enrollmentError": None})
            await uow.failures.resolve_for_payment(payment.id, now)
            await uow.failures.add(
                EnrollmentFailureLog.new(payment_id=payment.id, error="new", occurred_at=now)
            )
            raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        asyncio.run(unit())

    assert asyncio.run(uow.payments.get_by_id(payment.id)).gateway_response == {}
    assert asyncio.run(uow.failures.list_by_payment(payment.id)) == [open_entry]


def test_nested_transaction_rolled_back_by_outer_block() -> None:
    uow = InMemoryUnitOfWork()
    e = _enrollment()

    async def unit() -> None:
        async with uow.transaction():
            async with uow.transaction():
                await uow.enrollments.add(e)
            raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        asyncio.run(unit())
    assert asyncio.run(uow.enrollments.get_by_user_and_course(e.user_id, e.course_id)) is None


def test_merge_gateway_response_is_shallow_and_keeps_other_keys(uow, professor, student) -> None:
    course = add_course(uow, professor, price="199")
    payment = add_payment(uow, student, course)
    asyncio.run(uow.payments.merge_gateway_response(payment.id, {"a": 1, "b": {"x": 1}}))
    asyncio.run(uow.payments.merge_gateway_response(payment.id, {"b": {"y": 2}}))

    stored = asyncio.run(uow.payments.get_by_id(payment.id))
    assert stored.gateway_response == {"a": 1, "b": {"y": 2}}


def test_merge_gateway_response_unknown_payment() -> None:
    uow = InMemoryUnitOfWork()
    assert asyncio.run(uow.payments.merge_gateway_response(uuid4(), {"a": 1})) is False


def test_resolve_for_payment_only_touches_that_payment() -> None:
    uow = InMemoryUnitOfWork()
    now = datetime.now(UTC)
    target, other = uuid4(), uuid4()
    for pid in (target, target, other):
        asyncio.run(
            uow.failures.add(EnrollmentFailureLog.new(payment_id=pid, error="e", occurred_at=now))
        )

    assert asyncio.run(uow.failures.resolve_for_payment(target, now)) == 2
    remaining = asyncio.run(uow.failures.list_unresolved())
    assert [f.payment_id for f in remaining] == [other]
    assert asyncio.run(uow.failures.resolve_for_payment(target, now)) == 0
