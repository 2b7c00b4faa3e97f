from decimal import Decimal

import pytest

from domain.common.exceptions import DomainValidationException
from domain.payment.money import (
    Currency,
    MonetaryAmount,
    from_minor_units,
    to_minor_units,
    validate_charge_amount,
    validate_currency,
    validate_email,
    validate_refund_amount,
)
from domain.payment.result import AttemptResult


def test_minor_unit_conversion_avoids_float_drift():
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(Decimal("19.99")) == 1999
    assert to_minor_units("0.1") == 10
    assert to_minor_units(100) == 10000
    assert from_minor_units(1999) == Decimal("19.99")
    assert from_minor_units(100) == Decimal("1.00")


def test_half_cent_rounds_up():
    assert to_minor_units(Decimal("10.005")) == 1001


@pytest.mark.parametrize("validate", [validate_charge_amount, validate_refund_amount])
def test_amount_floor_is_one_major_unit(validate):
    too_small = validate(99)
    assert not too_small.success
    assert too_small.error_code == "amount_too_small"
    assert too_small.retryable is False

    assert validate(100).success
    assert validate(100).data == 100


def test_currency_allow_list():
    ok = validate_currency("pen")
    assert ok.success and ok.data is Currency.PEN

    bad = validate_currency("EUR")
    assert not bad.success
    assert bad.error_code == "unsupported_currency"

    narrowed = validate_currency("USD", allowed=["PEN"])
    assert not narrowed.success


def test_email_check():
    assert validate_email("buyer@example.com").success
    assert validate_email("  ").error_code == "invalid_email"
    assert validate_email(None).error_code == "invalid_email"


def test_monetary_amount_rejects_non_positive():
    with pytest.raises(DomainValidationException):
        MonetaryAmount(Decimal("0"), Currency.PEN)


def test_monetary_amount_normalizes_currency_and_units():
    amount = MonetaryAmount(Decimal("12.5"), "usd")  # type: ignore[arg-type]
    assert amount.currency is Currency.USD
    assert amount.minor_units == 1250
    assert MonetaryAmount.from_minor(1999, "PEN").value == Decimal("19.99")


def test_attempt_result_dict_is_discriminated():
    assert AttemptResult.ok({"id": "chr_1"}).to_dict() == {"success": True, "data": {"id": "chr_1"}}
    failed = AttemptResult.fail("Card declined", error_code="card_declined").to_dict()
    assert failed == {"success": False, "error": "Card declined", "retryable": False, "error_code": "card_declined"}
    assert "data" not in failed
