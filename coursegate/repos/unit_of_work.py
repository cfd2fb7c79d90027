"""Unit of work: the set of stores one engine call works against.

The engine takes a UnitOfWork instead of individual repos so the payment
bridge can wrap its enrollment + milestone writes in `transaction()`.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from coursegate.repos.course_repo import CourseRepo, InMemoryCourseRepo
from coursegate.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from coursegate.repos.failure_log_repo import (
    EnrollmentFailureRepo,
    InMemoryEnrollmentFailureRepo,
)
from coursegate.repos.milestone_repo import InMemoryMilestoneRepo, MilestoneRepo
from coursegate.repos.payment_repo import InMemoryPaymentRepo, PaymentRepo
from coursegate.repos.principal_repo import InMemoryPrincipalRepo, PrincipalRepo
from coursegate.repos.undo_journal import undo_scope


class UnitOfWork(Protocol):
    principals: PrincipalRepo
    courses: CourseRepo
    enrollments: EnrollmentRepo
    payments: PaymentRepo
    milestones: MilestoneRepo
    failures: EnrollmentFailureRepo

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """All writes inside the block commit together or not at all."""
        ...


class InMemoryUnitOfWork:
    """Process-local stores, used in tests and when DATABASE_URL is unset.

    transaction() undoes the block's own writes to every store if the
    block raises.  Writes by other callers are left alone.
    """

    def __init__(self) -> None:
        self.principals = InMemoryPrincipalRepo()
        self.courses = InMemoryCourseRepo()
        self.enrollments = InMemoryEnrollmentRepo()
        self.payments = InMemoryPaymentRepo()
        self.milestones = InMemoryMilestoneRepo()
        self.failures = InMemoryEnrollmentFailureRepo()

    def transaction(self) -> AbstractAsyncContextManager[None]:
        return undo_scope()
