"""
Payment domain events normalized from gateway webhooks.

Each inbound callback decodes into exactly one variant of `WebhookEvent`.
Consumers switch on `kind` (or use `match`) instead of comparing the
provider's raw `object` strings. Events carry no persistence; handlers
should deduplicate by the gateway-assigned id.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional, Union
import uuid


class WebhookEventKind(str, Enum):
    CHARGE_SUCCEEDED = "charge_succeeded"
    CHARGE_FAILED = "charge_failed"
    ORDER_EXPIRED = "order_expired"
    REFUND_SUCCEEDED = "refund_succeeded"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PaymentEvent:
    kind: ClassVar[WebhookEventKind]
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()), kw_only=True)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), kw_only=True)

    @property
    def reference_id(self) -> Optional[str]:
        """Gateway id to deduplicate on (charge, order or refund id)."""
        return None


@dataclass(frozen=True)
class ChargeSucceeded(PaymentEvent):
    kind: ClassVar[WebhookEventKind] = WebhookEventKind.CHARGE_SUCCEEDED

    charge_id: str
    amount: Decimal
    currency: Optional[str]
    email: Optional[str]
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def reference_id(self) -> Optional[str]:
        return self.charge_id


@dataclass(frozen=True)
class ChargeFailed(PaymentEvent):
    kind: ClassVar[WebhookEventKind] = WebhookEventKind.CHARGE_FAILED

    charge_id: str
    email: Optional[str]
    reason: str
    error_code: Optional[str] = None

    @property
    def reference_id(self) -> Optional[str]:
        return self.charge_id


@dataclass(frozen=True)
class OrderExpired(PaymentEvent):
    kind: ClassVar[WebhookEventKind] = WebhookEventKind.ORDER_EXPIRED

    order_id: str
    order_number: Optional[str]

    @property
    def reference_id(self) -> Optional[str]:
        return self.order_id


@dataclass(frozen=True)
class RefundSucceeded(PaymentEvent):
    kind: ClassVar[WebhookEventKind] = WebhookEventKind.REFUND_SUCCEEDED

    refund_id: str
    charge_id: Optional[str]
    amount: Decimal
    reason: Optional[str] = None

    @property
    def reference_id(self) -> Optional[str]:
        return self.refund_id


@dataclass(frozen=True)
class UnknownEvent(PaymentEvent):
    kind: ClassVar[WebhookEventKind] = WebhookEventKind.UNKNOWN

    object_type: Optional[str]
    raw: Any = None


WebhookEvent = Union[ChargeSucceeded, ChargeFailed, OrderExpired, RefundSucceeded, UnknownEvent]
