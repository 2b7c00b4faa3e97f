"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from application.dtos.payments import CreateCharge, CreateOrder, RefundCharge
from domain.payment.events import WebhookEvent
from domain.payment.result import AttemptResult


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for the card processor.

    Every operation returns an `AttemptResult`; expected failures are never raised.
    """

    provider: str

    async def create_charge(self, token: str, req: CreateCharge) -> AttemptResult[dict[str, Any]]: ...

    async def get_charge(self, charge_id: str) -> AttemptResult[dict[str, Any]]: ...

    async def refund_charge(self, req: RefundCharge) -> AttemptResult[dict[str, Any]]: ...

    async def create_order(self, req: CreateOrder) -> AttemptResult[dict[str, Any]]: ...

    def parse_webhook(self, payload: Any) -> WebhookEvent: ...

    async def aclose(self) -> None: ...
