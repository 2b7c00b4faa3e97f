"""
Payments API routes.

Exposes charge, refund and order endpoints plus the gateway webhook via the
application service. Keep this thin: no gateway details here; failed
`AttemptResult`s are turned into mapped exceptions by `raise_for_result`.
"""
from __future__ import annotations

import hmac
import ipaddress
from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_payment_service
from application.dtos.payments import ChargeWithToken, CreateOrder, RefundCharge, WebhookAck
from application.services.payment_service import PaymentService
from core.i18n import t
from core.logging_config import get_logger
from core.response import success_response
from core.settings import PaymentSettings, get_payment_settings
from infrastructure.external.payments.exceptions import PaymentSignatureError, raise_for_result


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)

WEBHOOK_TOKEN_HEADER = "X-Webhook-Token"


def _ip_permitted(remote_ip: str, allowlist: list[str]) -> bool:
    try:
        rip = ipaddress.ip_address(remote_ip)
    except ValueError:
        return False
    for entry in allowlist:
        try:
            if "/" in entry:
                if rip in ipaddress.ip_network(entry, strict=False):
                    return True
            elif rip == ipaddress.ip_address(entry):
                return True
        except ValueError:
            logger.warning("webhook_allowlist_entry_invalid", entry=entry)
            continue
    return False


def _verify_shared_secret(request: Request, expected: Optional[str], provider: str) -> None:
    if not expected:
        return
    supplied = request.headers.get(WEBHOOK_TOKEN_HEADER) or ""
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise PaymentSignatureError(t("Invalid webhook token"), provider=provider)


@router.post("/webhooks/culqi", summary="Culqi webhook")
async def culqi_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
    settings: PaymentSettings = Depends(get_payment_settings),
):
    provider = service.gateway.provider

    ct = (request.headers.get("content-type") or "").lower()
    if "application/json" not in ct:
        return success_response(message=t("Unsupported webhook content type, expected application/json"))

    # Optional IP allowlist
    allowlist = settings.webhook.ip_allowlist or []
    if allowlist and request.client and request.client.host:
        if not _ip_permitted(request.client.host, allowlist):
            logger.warning("webhook_ip_not_allowed", provider=provider, remote_ip=request.client.host)
            return success_response(message=t("Webhook source address not allowed"))

    _verify_shared_secret(request, settings.webhook.shared_secret, provider)

    event = service.handle_webhook(await request.body())
    ack = WebhookAck(
        kind=event.kind.value,
        reference_id=event.reference_id,
        amount=getattr(event, "amount", None),
    )
    # Return 200 to acknowledge receipt per provider conventions
    return success_response(data=ack.model_dump(mode="json"), message=t("Webhook received"))


@router.post("/charges", summary="Charge a card token")
async def create_charge(payload: ChargeWithToken, service: PaymentService = Depends(get_payment_service)):
    result = await service.create_charge(payload.token, payload.to_charge())
    charge = raise_for_result(result, provider=service.gateway.provider)
    return success_response(data=charge, message=t("Charge created"))


@router.get("/charges/{charge_id}", summary="Get charge")
async def get_charge(charge_id: str, service: PaymentService = Depends(get_payment_service)):
    result = await service.get_charge(charge_id)
    charge = raise_for_result(result, provider=service.gateway.provider)
    return success_response(data=charge, message=t("Charge status"))


@router.post("/refunds", summary="Refund a charge")
async def refund_charge(payload: RefundCharge, service: PaymentService = Depends(get_payment_service)):
    result = await service.refund_charge(payload)
    refund = raise_for_result(result, provider=service.gateway.provider)
    return success_response(data=refund, message=t("Refund requested"))


@router.post("/orders", summary="Create order")
async def create_order(payload: CreateOrder, service: PaymentService = Depends(get_payment_service)):
    result = await service.create_order(payload)
    order = raise_for_result(result, provider=service.gateway.provider)
    return success_response(data=order, message=t("Order created"))
