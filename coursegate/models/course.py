from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

from coursegate.exceptions import CourseValidationError

# A stored price at or below this value is free.  Zero and negative prices
# only reach the read path through legacy rows; Course.new() normalizes zero
# to None and rejects negatives.
FREE_PRICE_CEILING = Decimal("0")

DEFAULT_CURRENCY = "EGP"


@dataclass(frozen=True, slots=True)
class Pricing:
    """Free-or-paid classification, derived once from a course's raw price."""

    amount: Decimal | None
    currency: str

    @staticmethod
    def free(currency: str = DEFAULT_CURRENCY) -> Pricing:
        return Pricing(amount=None, currency=currency)

    @staticmethod
    def paid(amount: Decimal, currency: str = DEFAULT_CURRENCY) -> Pricing:
        return Pricing(amount=amount, currency=currency)

    @staticmethod
    def from_price(price: Decimal | None, currency: str) -> Pricing:
        if price is None or price <= FREE_PRICE_CEILING:
            return Pricing.free(currency)
        return Pricing.paid(price, currency)

    @property
    def is_free(self) -> bool:
        return self.amount is None


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    professor_id: UUID
    is_published: bool = False
    price: Decimal | None = None
    currency: str = DEFAULT_CURRENCY
    lesson_count: int = 0

    @property
    def pricing(self) -> Pricing:
        return Pricing.from_price(self.price, self.currency)

    @property
    def is_free(self) -> bool:
        return self.pricing.is_free

    @staticmethod
    def new(
        *,
        title: str,
        professor_id: UUID,
        price: Decimal | int | str | None = None,
        currency: str = DEFAULT_CURRENCY,
        is_published: bool = False,
        lesson_count: int = 0,
    ) -> Course:
        """Build a course, normalizing the price at the write boundary.

        Empty or zero prices are stored as None; negative prices are rejected.
        """
        title = title.strip()
        if not title:
            raise CourseValidationError("title must be non-empty")

        normalized: Decimal | None = None
        if price is not None and price != "":
            normalized = Decimal(str(price))
            if normalized < 0:
                raise CourseValidationError(f"price must not be negative (got {price})")
            if normalized == 0:
                normalized = None

        return Course(
            id=uuid4(),
            title=title,
            professor_id=professor_id,
            is_published=is_published,
            price=normalized,
            currency=currency.upper(),
            lesson_count=lesson_count,
        )
