"""
Payment DTOs (Pydantic v2) used at application boundaries.

Amounts are major units (`Decimal`); conversion to minor units and the
gateway's floor/currency checks happen in the gateway client so that failures
come back as `AttemptResult` values instead of request validation errors.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.types import condecimal


RefundReason = Literal["solicitud_comprador", "duplicado", "fraudulento"]


def _upper_currency(v: str) -> str:
    u = (v or "").strip().upper()
    if len(u) != 3 or not u.isalpha():
        raise ValueError("currency must be ISO-4217 alpha-3")
    return u


class CustomerDetails(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone_number: str
    address: Optional[str] = None
    city: Optional[str] = None


class CreateCharge(BaseModel):
    amount: condecimal(gt=0)  # type: ignore[valid-type]
    currency: str = Field(default="PEN")
    email: str
    description: str
    order_number: Optional[str] = None
    customer: Optional[CustomerDetails] = None
    idempotency_key: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("currency")
    @classmethod
    def _upper_charge_currency(cls, v: str) -> str:
        return _upper_currency(v)


class ChargeWithToken(CreateCharge):
    """HTTP body: card token produced client-side plus the charge request."""
    token: str

    def to_charge(self) -> CreateCharge:
        return CreateCharge(**self.model_dump(exclude={"token"}))


class RefundCharge(BaseModel):
    """
    Refund request. The derived idempotency key covers charge, amount, reason
    and `refund_reference`; repeat partial refunds of the same amount need a
    distinct `refund_reference` (or an explicit `idempotency_key`).
    """
    charge_id: str
    amount: condecimal(gt=0)  # type: ignore[valid-type]
    reason: RefundReason = "solicitud_comprador"
    refund_reference: Optional[str] = None
    idempotency_key: Optional[str] = None


class CreateOrder(BaseModel):
    amount: condecimal(gt=0)  # type: ignore[valid-type]
    currency: str = Field(default="PEN")
    description: str
    order_number: str
    customer_details: CustomerDetails
    expiration_days: Optional[int] = Field(default=None, ge=1)
    idempotency_key: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("currency")
    @classmethod
    def _upper_order_currency(cls, v: str) -> str:
        return _upper_currency(v)


class WebhookAck(BaseModel):
    received: bool = True
    kind: str
    reference_id: Optional[str] = None
    amount: Optional[Decimal] = None
