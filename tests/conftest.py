from __future__ import annotations

import asyncio
import sys
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import coursegate` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from coursegate.api import dependencies  # noqa: E402
from coursegate.main import app  # noqa: E402
from coursegate.models.course import Course  # noqa: E402
from coursegate.models.payment import Payment, PaymentStatus  # noqa: E402
from coursegate.models.principal import Principal, Role  # noqa: E402
from coursegate.repos.unit_of_work import InMemoryUnitOfWork  # noqa: E402
from coursegate.services import token_service  # noqa: E402


@pytest.fixture(autouse=True)
def uow() -> InMemoryUnitOfWork:
    """Fresh in-memory stores per test, also served to the API."""
    fresh = InMemoryUnitOfWork()
    dependencies.memory_uow = fresh
    return fresh


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


def add_principal(
    uow: InMemoryUnitOfWork,
    role: Role = Role.STUDENT,
    *,
    is_active: bool = True,
) -> Principal:
    p = Principal(user_id=uuid4(), role=role, is_active=is_active)
    asyncio.run(uow.principals.add(p))
    return p


def add_course(
    uow: InMemoryUnitOfWork,
    professor: Principal,
    *,
    price: Decimal | int | str | None = None,
    published: bool = True,
    title: str = "Organic Chemistry I",
) -> Course:
    c = Course.new(
        title=title,
        professor_id=professor.user_id,
        price=price,
        is_published=published,
    )
    asyncio.run(uow.courses.add(c))
    return c


def add_payment(
    uow: InMemoryUnitOfWork,
    user: Principal,
    course: Course,
    *,
    status: PaymentStatus = PaymentStatus.COMPLETED,
    amount: Decimal = Decimal("199"),
    age: timedelta = timedelta(0),
) -> Payment:
    p = Payment.new(
        user_id=user.user_id,
        course_id=course.id,
        amount=amount,
        status=status,
        created_at=datetime.now(UTC) - age,
    )
    asyncio.run(uow.payments.add(p))
    return p


def mint_token(principal: Principal) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=str(principal.user_id), role=principal.role.value
    )


def auth_header(principal: Principal) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(principal)}"}


@pytest.fixture
def professor(uow: InMemoryUnitOfWork) -> Principal:
    return add_principal(uow, Role.PROFESSOR)


@pytest.fixture
def student(uow: InMemoryUnitOfWork) -> Principal:
    return add_principal(uow, Role.STUDENT)


@pytest.fixture
def admin(uow: InMemoryUnitOfWork) -> Principal:
    return add_principal(uow, Role.ADMIN)
