"""
Business codes shared by every layer.

`BusinessCode` covers the generic API envelope (request validation, routing,
unexpected errors); gateway outcomes use `PaymentCode`. The two ranges do not
overlap, so a single `code` field in the response identifies either.
"""
from enum import IntEnum

from shared.codes.payment_codes import PaymentCode


class BusinessCode(IntEnum):
    SUCCESS = 0

    # Request errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003

    # Generic business errors (2xxxx)
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006

    # Authorization errors (3xxxx)
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003

    # Rate limiting (5xxxx)
    TOO_MANY_REQUESTS = 50001


__all__ = ["BusinessCode", "PaymentCode"]
