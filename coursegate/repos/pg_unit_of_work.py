"""PostgreSQL implementation of UnitOfWork."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from coursegate.repos.pg_course_repo import PgCourseRepo
from coursegate.repos.pg_enrollment_repo import PgEnrollmentRepo
from coursegate.repos.pg_failure_log_repo import PgEnrollmentFailureRepo
from coursegate.repos.pg_milestone_repo import PgMilestoneRepo
from coursegate.repos.pg_payment_repo import PgPaymentRepo
from coursegate.repos.pg_principal_repo import PgPrincipalRepo


class PgUnitOfWork:
    """All repos share one request-scoped session.

    The outer commit/rollback belongs to session_scope(); transaction()
    opens a SAVEPOINT so a failed unit rolls back without poisoning the
    rest of the request (the failure handler still needs to write).
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.principals = PgPrincipalRepo(session)
        self.courses = PgCourseRepo(session)
        self.enrollments = PgEnrollmentRepo(session)
        self.payments = PgPaymentRepo(session)
        self.milestones = PgMilestoneRepo(session)
        self.failures = PgEnrollmentFailureRepo(session)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._session.begin_nested():
            yield
