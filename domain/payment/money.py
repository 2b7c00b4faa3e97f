"""
Monetary value object and the pure checks applied before money moves.

Amounts travel to the gateway as integer minor units; every charge and refund
must be at least 1.00 major unit (100 minor units).
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, Optional, Union

from domain.common.exceptions import DomainValidationException
from domain.payment.result import AttemptResult


MINOR_UNITS_PER_MAJOR = 100
MIN_CHARGE_MINOR_UNITS = 100
MIN_REFUND_MINOR_UNITS = 100

AmountLike = Union[Decimal, int, float, str]


class Currency(str, Enum):
    """Currencies accepted by the card gateway."""
    PEN = "PEN"
    USD = "USD"


DEFAULT_ALLOWED_CURRENCIES = frozenset(c.value for c in Currency)


def _to_decimal(amount: AmountLike) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # str() first so 19.99 stays 19.99 instead of 19.989999...
        return Decimal(str(amount))
    return Decimal(amount)


def to_minor_units(amount: AmountLike) -> int:
    value = _to_decimal(amount) * MINOR_UNITS_PER_MAJOR
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(minor_units: int) -> Decimal:
    return (Decimal(int(minor_units)) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))


def _validate_floor(minor_units: int, floor: int, what: str) -> AttemptResult[int]:
    if minor_units < floor:
        return AttemptResult.fail(
            f"The minimum {what} amount is {from_minor_units(floor)}",
            error_code="amount_too_small",
        )
    return AttemptResult.ok(minor_units)


def validate_charge_amount(minor_units: int) -> AttemptResult[int]:
    return _validate_floor(minor_units, MIN_CHARGE_MINOR_UNITS, "charge")


def validate_refund_amount(minor_units: int) -> AttemptResult[int]:
    return _validate_floor(minor_units, MIN_REFUND_MINOR_UNITS, "refund")


def validate_currency(
    code: Optional[str],
    allowed: Optional[Iterable[str]] = None,
) -> AttemptResult[Currency]:
    """Check `code` against the allow-list (defaults to every `Currency` member)."""
    allow = {c.upper() for c in (allowed or DEFAULT_ALLOWED_CURRENCIES)}
    normalized = (code or "").strip().upper()
    if normalized not in allow:
        return AttemptResult.fail(
            f"Unsupported currency: {code}",
            error_code="unsupported_currency",
        )
    try:
        return AttemptResult.ok(Currency(normalized))
    except ValueError:
        # allow-list configured with a currency the gateway enum does not know
        return AttemptResult.fail(
            f"Unsupported currency: {code}",
            error_code="unsupported_currency",
        )


def validate_email(email: Optional[str]) -> AttemptResult[str]:
    value = (email or "").strip()
    if not value or "@" not in value:
        return AttemptResult.fail("Invalid email address", error_code="invalid_email")
    return AttemptResult.ok(value)


@dataclass(frozen=True)
class MonetaryAmount:
    """Positive amount in major units plus its currency."""

    value: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        value = _to_decimal(self.value)
        if value <= 0:
            raise DomainValidationException(
                f"Amount must be greater than 0: {self.value}",
                field="amount",
            )
        object.__setattr__(self, "value", value)
        if not isinstance(self.currency, Currency):
            object.__setattr__(self, "currency", Currency(str(self.currency).upper()))

    @property
    def minor_units(self) -> int:
        return to_minor_units(self.value)

    @classmethod
    def from_minor(cls, minor_units: int, currency: Union[Currency, str]) -> "MonetaryAmount":
        return cls(value=from_minor_units(minor_units), currency=currency)  # type: ignore[arg-type]
