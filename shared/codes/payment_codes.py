"""
Payment specific codes and gateway error-code lookup tables.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Validation errors raised before any network call (61xxx)
    VALIDATION_ERROR = 61000
    AMOUNT_TOO_SMALL = 61001
    UNSUPPORTED_CURRENCY = 61002
    INVALID_TOKEN = 61003
    INVALID_CHARGE_ID = 61004
    INVALID_EMAIL = 61005
    NOT_CONFIGURED = 61006

    # Card / business declines (62xxx)
    CARD_DECLINED = 62000

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    SIGNATURE_ERROR = 60002
    TIMEOUT = 60003
    RATE_LIMITED = 60004


# error_code (as returned inside AttemptResult) -> PaymentCode
ERROR_CODE_TO_PAYMENT_CODE: dict[str, PaymentCode] = {
    "amount_too_small": PaymentCode.AMOUNT_TOO_SMALL,
    "unsupported_currency": PaymentCode.UNSUPPORTED_CURRENCY,
    "invalid_token": PaymentCode.INVALID_TOKEN,
    "invalid_charge_id": PaymentCode.INVALID_CHARGE_ID,
    "invalid_email": PaymentCode.INVALID_EMAIL,
    "configuration_error": PaymentCode.NOT_CONFIGURED,
    "timeout": PaymentCode.TIMEOUT,
    "rate_limit_error": PaymentCode.RATE_LIMITED,
}

# Card-level decline codes reported by the gateway in `code`
CARD_DECLINE_CODES = frozenset({
    "card_declined",
    "insufficient_funds",
    "lost_card",
    "stolen_card",
    "expired_card",
    "incorrect_cvc",
    "fraudulent",
})

# Gateway code -> user facing message (msgid for core.i18n.t)
GATEWAY_CODE_MESSAGES: dict[str, str] = {
    "card_declined": "Card declined",
    "insufficient_funds": "Insufficient funds",
    "lost_card": "Card reported as lost",
    "stolen_card": "Card reported as stolen",
    "expired_card": "Card expired",
    "incorrect_cvc": "Incorrect CVC code",
    "processing_error": "Error while processing the payment",
    "fraudulent": "Transaction flagged as fraudulent",
    "invalid_request": "Invalid payment request",
    "authentication_error": "Payment provider authentication failed",
    "api_connection_error": "Could not connect to the payment provider",
    "rate_limit_error": "Too many payment requests, please wait a moment",
    "timeout": "The payment provider took too long to respond",
}

# Gateway error `type` -> generic fallback message
GATEWAY_CATEGORY_MESSAGES: dict[str, str] = {
    "card_error": "There was a problem with your card. Check the details and try again.",
    "authentication_error": "Authentication with the payment system failed.",
    "invalid_request_error": "The payment request was rejected.",
    "api_connection_error": "Connection error. Please try again.",
    "rate_limit_error": "Too many payment requests, please wait a moment",
    "timeout": "The payment provider took too long to respond",
    "configuration_error": "Payments are not available right now.",
}

GENERIC_PAYMENT_ERROR = "Error processing the payment. Please try again."
