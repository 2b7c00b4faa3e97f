"""
Culqi adapter over the REST API (https://api.culqi.com/v2), no SDK needed.

Implements charges, charge lookup, refunds and orders (payment links whose
charge happens later, out of band). Every operation validates locally first,
so malformed tokens, ids, currencies and sub-minimum amounts never reach the
network, then goes through the shared retry/classification pipeline.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional

import httpx

from application.dtos.payments import CreateCharge, CreateOrder, RefundCharge
from core.settings import PaymentSettings
from domain.payment.events import WebhookEvent
from domain.payment.money import (
    to_minor_units,
    validate_charge_amount,
    validate_currency,
    validate_email,
    validate_refund_amount,
)
from domain.payment.result import AttemptResult
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.retry import SleepFn
from infrastructure.external.payments.transport import HTTPMethod
from infrastructure.external.payments.webhooks import WebhookProcessor


SECONDS_PER_DAY = 86400


class CulqiClient(BasePaymentClient):
    provider = "culqi"

    def __init__(
        self,
        settings: PaymentSettings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        webhook_processor: Optional[WebhookProcessor] = None,
    ) -> None:
        super().__init__(
            base_url=settings.culqi.base_url,
            secret_key=settings.culqi.secret_key,
            settings=settings,
            http_client=http_client,
            sleep=sleep,
        )
        self._clock = clock
        self.webhooks = webhook_processor or WebhookProcessor()
        if not self.transport.configured:
            self._log("payment_gateway_disabled", reason="CULQI__SECRET_KEY not configured")

    def _rejected(self, operation: str, result: AttemptResult[Any]) -> AttemptResult[Any]:
        self._log("payment_validation_failed", operation=operation, error_code=result.error_code)
        return result

    def _check_prefix(self, value: Optional[str], prefix: str, *, error: str, error_code: str) -> AttemptResult[str]:
        if not value or not value.startswith(prefix):
            return AttemptResult.fail(error, error_code=error_code)
        return AttemptResult.ok(value)

    def _check_charge_id(self, charge_id: Optional[str]) -> AttemptResult[str]:
        return self._check_prefix(
            charge_id,
            self.settings.culqi.charge_prefix,
            error="Invalid charge id",
            error_code="invalid_charge_id",
        )

    async def create_charge(self, token: str, req: CreateCharge) -> AttemptResult[dict[str, Any]]:
        minor = to_minor_units(req.amount)
        failure = self._first_failure(
            self._check_prefix(token, self.settings.culqi.token_prefix, error="Invalid payment token", error_code="invalid_token"),
            validate_currency(req.currency, self.settings.allowed_currencies),
            validate_email(req.email),
            validate_charge_amount(minor),
        )
        if failure is not None:
            return self._rejected("create_charge", failure)

        metadata = self._sanitize_metadata(req.metadata)
        if req.order_number:
            metadata.setdefault("order_number", req.order_number)
        body: dict[str, Any] = {
            "amount": minor,
            "currency_code": req.currency,
            "email": req.email,
            "source_id": token,
            "description": req.description,
            "metadata": metadata,
        }
        if req.customer is not None:
            body["antifraud_details"] = {
                "first_name": req.customer.first_name,
                "last_name": req.customer.last_name,
                "address": req.customer.address or "",
                "address_city": req.customer.city or "",
                "phone_number": req.customer.phone_number,
            }

        self._log(
            "payment_charge_request",
            amount=str(req.amount),
            currency=req.currency,
            order_number=req.order_number,
            description=req.description,
        )
        return await self._call(
            "create_charge", HTTPMethod.POST, "/charges", body, idempotency_key=req.idempotency_key
        )

    async def get_charge(self, charge_id: str) -> AttemptResult[dict[str, Any]]:
        checked = self._check_charge_id(charge_id)
        if not checked.success:
            return self._rejected("get_charge", checked)
        return await self._call("get_charge", HTTPMethod.GET, f"/charges/{charge_id}")

    async def refund_charge(self, req: RefundCharge) -> AttemptResult[dict[str, Any]]:
        minor = to_minor_units(req.amount)
        failure = self._first_failure(self._check_charge_id(req.charge_id), validate_refund_amount(minor))
        if failure is not None:
            return self._rejected("refund_charge", failure)

        body = {"amount": minor, "charge_id": req.charge_id, "reason": req.reason}
        self._log("payment_refund_request", charge_id=req.charge_id, amount=str(req.amount), reason=req.reason)
        return await self._call(
            "refund_charge", HTTPMethod.POST, "/refunds", body, idempotency_key=req.idempotency_key
        )

    def order_expiration(self, days: Optional[int] = None) -> int:
        """Unix seconds `days` from now (defaults to the configured window)."""
        days = days or self.settings.order.expiration_days
        return int(self._clock()) + days * SECONDS_PER_DAY

    async def create_order(self, req: CreateOrder) -> AttemptResult[dict[str, Any]]:
        minor = to_minor_units(req.amount)
        failure = self._first_failure(
            validate_currency(req.currency, self.settings.allowed_currencies),
            validate_email(req.customer_details.email),
            validate_charge_amount(minor),
        )
        if failure is not None:
            return self._rejected("create_order", failure)

        customer = req.customer_details
        metadata = self._sanitize_metadata(req.metadata)
        metadata.setdefault("order_number", req.order_number)
        body = {
            "amount": minor,
            "currency_code": req.currency,
            "description": req.description,
            "order_number": req.order_number,
            "client_details": {
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "email": customer.email,
                "phone_number": customer.phone_number,
            },
            "expiration_date": self.order_expiration(req.expiration_days),
            "metadata": metadata,
        }
        self._log(
            "payment_order_request",
            order_number=req.order_number,
            amount=str(req.amount),
            currency=req.currency,
            expiration_date=body["expiration_date"],
        )
        return await self._call(
            "create_order", HTTPMethod.POST, "/orders", body, idempotency_key=req.idempotency_key
        )

    def parse_webhook(self, payload: Any) -> WebhookEvent:
        if isinstance(payload, (bytes, bytearray)):
            return self.webhooks.parse(bytes(payload))
        return self.webhooks.process(payload)
