"""
Gateway error model and retry classification.

A `GatewayError` is built once per failed attempt, either from the gateway's
error body or from the transport exception, and handed straight to
`ErrorClassifier`, which decides whether the attempt may be retried and what
the customer is allowed to read.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import httpx

from core.i18n import t
from core.logging_config import get_logger
from shared.codes.payment_codes import (
    CARD_DECLINE_CODES,
    GATEWAY_CATEGORY_MESSAGES,
    GATEWAY_CODE_MESSAGES,
    GENERIC_PAYMENT_ERROR,
)


logger = get_logger(__name__)


class ErrorCategory(str, Enum):
    CARD_ERROR = "card_error"
    INVALID_REQUEST = "invalid_request_error"
    AUTHENTICATION = "authentication_error"
    API_CONNECTION = "api_connection_error"
    RATE_LIMIT = "rate_limit_error"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration_error"
    UNKNOWN = "unknown"


def _category_from_status(status_code: int) -> ErrorCategory:
    if status_code in (401, 403):
        return ErrorCategory.AUTHENTICATION
    if status_code == 429:
        return ErrorCategory.RATE_LIMIT
    if status_code in (502, 503, 504):
        return ErrorCategory.API_CONNECTION
    if status_code == 408:
        return ErrorCategory.TIMEOUT
    if status_code in (400, 404, 409, 422):
        return ErrorCategory.INVALID_REQUEST
    return ErrorCategory.UNKNOWN


@dataclass(frozen=True)
class GatewayError:
    type: str
    code: Optional[str] = None
    decline_code: Optional[str] = None
    merchant_message: Optional[str] = None
    user_message: Optional[str] = None
    status_code: Optional[int] = None
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    @property
    def category(self) -> ErrorCategory:
        try:
            return ErrorCategory(self.type)
        except ValueError:
            return ErrorCategory.UNKNOWN

    @property
    def specific_code(self) -> Optional[str]:
        """Most precise code the gateway gave us (decline reason over generic code)."""
        return self.decline_code or self.code

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "GatewayError":
        if not isinstance(body, dict) or not body.get("type"):
            return cls(
                type=_category_from_status(status_code).value,
                merchant_message=f"Gateway responded with HTTP {status_code}",
                status_code=status_code,
            )
        return cls(
            type=str(body.get("type")),
            code=body.get("code"),
            decline_code=body.get("decline_code"),
            merchant_message=body.get("merchant_message"),
            user_message=body.get("user_message"),
            status_code=status_code,
        )

    @classmethod
    def from_exception(cls, exc: BaseException) -> "GatewayError":
        if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
            category, code = ErrorCategory.TIMEOUT, "timeout"
        elif isinstance(exc, httpx.TransportError):
            category, code = ErrorCategory.API_CONNECTION, None
        elif ErrorClassifier.has_network_signature(str(exc)):
            category, code = ErrorCategory.API_CONNECTION, None
        else:
            category, code = ErrorCategory.UNKNOWN, None
        return cls(
            type=category.value,
            code=code,
            merchant_message=f"{type(exc).__name__}: {exc}",
            exception=exc,
        )

    @classmethod
    def not_configured(cls, what: str = "gateway secret key") -> "GatewayError":
        return cls(
            type=ErrorCategory.CONFIGURATION.value,
            code="configuration_error",
            merchant_message=f"Missing {what}",
        )


@dataclass(frozen=True)
class Classification:
    category: ErrorCategory
    retryable: bool
    user_message: str
    error_code: Optional[str]


class ErrorClassifier:
    RETRYABLE_CATEGORIES = frozenset({
        ErrorCategory.API_CONNECTION,
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.TIMEOUT,
    })
    TERMINAL_CATEGORIES = frozenset({
        ErrorCategory.CARD_ERROR,
        ErrorCategory.INVALID_REQUEST,
        ErrorCategory.AUTHENTICATION,
        ErrorCategory.CONFIGURATION,
    })
    RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})
    NETWORK_SIGNATURES = ("econnreset", "etimedout", "network", "timed out", "connection reset")

    def __init__(self, provider: str = "culqi") -> None:
        self.provider = provider

    @classmethod
    def has_network_signature(cls, text: Optional[str]) -> bool:
        lowered = (text or "").lower()
        return any(sig in lowered for sig in cls.NETWORK_SIGNATURES)

    def is_retryable(self, error: GatewayError) -> bool:
        if error.specific_code in CARD_DECLINE_CODES or error.code in CARD_DECLINE_CODES:
            return False
        category = error.category
        if category in self.TERMINAL_CATEGORIES:
            return False
        if category in self.RETRYABLE_CATEGORIES or error.code == "timeout":
            return True
        if error.exception is not None:
            if isinstance(error.exception, (httpx.TimeoutException, httpx.TransportError, asyncio.TimeoutError)):
                return True
            return self.has_network_signature(str(error.exception))
        return error.status_code in self.RETRYABLE_STATUS_CODES

    def to_user_message(self, error: GatewayError) -> str:
        """User-safe text; merchant diagnostics are never returned."""
        if error.user_message:
            return error.user_message
        for code in (error.decline_code, error.code):
            if code and code in GATEWAY_CODE_MESSAGES:
                return t(GATEWAY_CODE_MESSAGES[code])
        category_message = GATEWAY_CATEGORY_MESSAGES.get(error.category.value)
        if category_message:
            return t(category_message)
        return t(GENERIC_PAYMENT_ERROR)

    def classify(self, error: GatewayError, *, operation: str, attempt: int) -> Classification:
        result = Classification(
            category=error.category,
            retryable=self.is_retryable(error),
            user_message=self.to_user_message(error),
            error_code=error.specific_code or error.category.value,
        )
        self._log(error, result, operation=operation, attempt=attempt)
        return result

    def _log(self, error: GatewayError, result: Classification, *, operation: str, attempt: int) -> None:
        try:
            log = logger.error if result.category is ErrorCategory.UNKNOWN else logger.warning
            log(
                "payment_gateway_error_classified",
                provider=self.provider,
                operation=operation,
                attempt=attempt,
                category=result.category.value,
                error_code=result.error_code,
                status_code=error.status_code,
                merchant_message=error.merchant_message,
                retryable=result.retryable,
            )
        except Exception:  # pragma: no cover - logging must never change the verdict
            pass
