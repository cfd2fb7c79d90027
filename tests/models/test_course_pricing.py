from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from coursegate.exceptions import CourseValidationError
from coursegate.models.course import FREE_PRICE_CEILING, Course, Pricing
from coursegate.models.principal import Principal, Role


@pytest.mark.parametrize("price", [None, "", 0, "0", "0.00", Decimal("0")])
def test_new_normalizes_free_prices_to_none(price) -> None:
    c = Course.new(title="Intro", professor_id=uuid4(), price=price)
    assert c.price is None
    assert c.is_free is True


def test_new_keeps_positive_price() -> None:
    c = Course.new(title="Intro", professor_id=uuid4(), price="199.00", currency="egp")
    assert c.price == Decimal("199.00")
    assert c.currency == "EGP"
    assert c.is_free is False
    assert c.pricing == Pricing.paid(Decimal("199.00"), "EGP")


def test_new_rejects_negative_price() -> None:
    with pytest.raises(CourseValidationError, match="must not be negative"):
        Course.new(title="Intro", professor_id=uuid4(), price="-5")


def test_new_rejects_blank_title() -> None:
    with pytest.raises(CourseValidationError):
        Course.new(title="   ", professor_id=uuid4())


@pytest.mark.parametrize("legacy_price", [Decimal("0"), Decimal("-1")])
def test_stored_non_positive_price_reads_as_free(legacy_price) -> None:
    c = replace(Course.new(title="Intro", professor_id=uuid4()), price=legacy_price)
    assert c.is_free is True
    assert c.pricing.amount is None


def test_ceiling_is_zero() -> None:
    assert FREE_PRICE_CEILING == 0
    assert Pricing.from_price(Decimal("0.01"), "EGP").is_free is False


def test_principal_roles() -> None:
    admin = Principal(user_id=uuid4(), role=Role.ADMIN)
    prof = Principal(user_id=uuid4(), role=Role.PROFESSOR)
    assert admin.is_admin() and admin.can_self_enroll()
    assert not prof.can_self_enroll()
    assert Principal(user_id=uuid4(), role=Role.STUDENT).is_student()
