"""
Exceptions for payment providers mapped to unified BusinessException variants.

Gateway operations never raise these for expected failures; they return an
`AttemptResult`. `raise_for_result` converts a failed result into one of
these for callers (HTTP routes) that prefer exception flow.
"""
from __future__ import annotations

from typing import Optional, TypeVar

from domain.common.exceptions import BusinessException
from domain.payment.result import AttemptResult
from shared.codes.payment_codes import (
    CARD_DECLINE_CODES,
    ERROR_CODE_TO_PAYMENT_CODE,
    PaymentCode,
)


T = TypeVar("T")

VALIDATION_ERROR_CODES = frozenset({
    "amount_too_small",
    "unsupported_currency",
    "invalid_token",
    "invalid_charge_id",
    "invalid_email",
})

# gateway `type` reported without a specific decline code
CARD_ERROR_TYPE = "card_error"


class PaymentProviderError(BusinessException):
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        provider_code: str | None = None,
        code: int = PaymentCode.PROVIDER_ERROR,
        details: Optional[dict] = None,
    ):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=code,
            message=message,
            error_type="PaymentProviderError",
            details=full_details,
        )


class PaymentRecoverableError(BusinessException):
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        provider_code: str | None = None,
        code: int = PaymentCode.PROVIDER_RECOVERABLE,
        details: Optional[dict] = None,
    ):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=code,
            message=message,
            error_type="PaymentRecoverableError",
            details=full_details,
        )


class PaymentValidationError(BusinessException):
    retryable = False

    def __init__(self, message: str, *, error_code: str, field: str | None = None):
        super().__init__(
            code=ERROR_CODE_TO_PAYMENT_CODE.get(error_code, PaymentCode.VALIDATION_ERROR),
            message=message,
            error_type="PaymentValidationError",
            details={"error_code": error_code},
            field=field,
        )


class PaymentSignatureError(BusinessException):
    retryable = False

    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=message,
            error_type="PaymentSignatureError",
            details=full_details,
        )


def raise_for_result(result: AttemptResult[T], *, provider: str) -> T:
    """Return `result.data` or raise the exception matching the failure."""
    if result.success:
        return result.data  # type: ignore[return-value]

    message = result.error or "Payment failed"
    error_code = result.error_code
    if error_code in VALIDATION_ERROR_CODES:
        raise PaymentValidationError(message, error_code=error_code)
    if result.retryable:
        raise PaymentRecoverableError(
            message,
            provider=provider,
            provider_code=error_code,
            code=ERROR_CODE_TO_PAYMENT_CODE.get(error_code or "", PaymentCode.PROVIDER_RECOVERABLE),
        )
    if error_code in CARD_DECLINE_CODES or error_code == CARD_ERROR_TYPE:
        code = PaymentCode.CARD_DECLINED
    else:
        code = ERROR_CODE_TO_PAYMENT_CODE.get(error_code or "", PaymentCode.PROVIDER_ERROR)
    raise PaymentProviderError(message, provider=provider, provider_code=error_code, code=code)
