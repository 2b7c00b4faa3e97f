"""
Application service orchestrating payment use-cases.

This class depends only on the application PaymentGateway port and DTOs.
Gateway implementations are provided by infrastructure and must be injected
from the composition root (API dependencies), keeping dependencies one-way.
"""
from __future__ import annotations

import hashlib
from typing import Any, Union

from application.dtos.payments import CreateCharge, CreateOrder, RefundCharge
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.payment.events import WebhookEvent
from domain.payment.result import AttemptResult


logger = get_logger(__name__)


def _ensure_idempotency_key(req: Union[CreateCharge, RefundCharge, CreateOrder], *, token: str = "") -> None:
    if getattr(req, "idempotency_key", None):
        return
    # Stable, reproducible key derived from business identifiers (no timestamp)
    if isinstance(req, RefundCharge):
        base = f"refund|{req.charge_id}|{req.amount}|{req.reason}|{req.refund_reference or ''}"
    elif isinstance(req, CreateOrder):
        base = f"order|{req.order_number}|{req.amount}|{req.currency}"
    else:
        # a card token is single use, so it scopes the key to one checkout attempt
        base = f"charge|{req.order_number or ''}|{req.amount}|{req.currency}|{req.email.lower()}|{token}"
    req.idempotency_key = hashlib.sha256(base.encode("utf-8")).hexdigest()


class PaymentService:
    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    def _log_outcome(self, event: str, result: AttemptResult[Any], **kwargs) -> None:
        log = logger.info if result.success else logger.warning
        log(
            event,
            provider=self.gateway.provider,
            success=result.success,
            error_code=result.error_code,
            retryable=result.retryable,
            **kwargs,
        )

    async def create_charge(self, token: str, req: CreateCharge) -> AttemptResult[dict[str, Any]]:
        _ensure_idempotency_key(req, token=token)
        logger.info(
            "payment_create_request",
            order_number=req.order_number,
            provider=self.gateway.provider,
            idempotency_key=req.idempotency_key,
        )
        result = await self.gateway.create_charge(token, req)
        charge_id = result.data.get("id") if result.success and isinstance(result.data, dict) else None
        self._log_outcome("payment_create_response", result, order_number=req.order_number, charge_id=charge_id)
        return result

    async def get_charge(self, charge_id: str) -> AttemptResult[dict[str, Any]]:
        logger.info("payment_query_request", charge_id=charge_id, provider=self.gateway.provider)
        return await self.gateway.get_charge(charge_id)

    async def refund_charge(self, req: RefundCharge) -> AttemptResult[dict[str, Any]]:
        _ensure_idempotency_key(req)
        logger.info(
            "payment_refund_request",
            charge_id=req.charge_id,
            provider=self.gateway.provider,
            idempotency_key=req.idempotency_key,
        )
        result = await self.gateway.refund_charge(req)
        self._log_outcome("payment_refund_response", result, charge_id=req.charge_id)
        return result

    async def create_order(self, req: CreateOrder) -> AttemptResult[dict[str, Any]]:
        _ensure_idempotency_key(req)
        logger.info(
            "payment_order_create_request",
            order_number=req.order_number,
            provider=self.gateway.provider,
            idempotency_key=req.idempotency_key,
        )
        result = await self.gateway.create_order(req)
        self._log_outcome("payment_order_create_response", result, order_number=req.order_number)
        return result

    def handle_webhook(self, payload: Any) -> WebhookEvent:
        event = self.gateway.parse_webhook(payload)
        logger.info(
            "payment_webhook_parsed",
            provider=self.gateway.provider,
            kind=event.kind.value,
            reference_id=event.reference_id,
        )
        return event

    async def aclose(self) -> None:
        await self.gateway.aclose()
