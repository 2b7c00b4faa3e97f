"""
Culqi webhook decoding into the closed set of payment domain events.

The gateway posts `{"object": "event.charge.succeeded", "data": {...}}`.
`WebhookProcessor.process` never raises: unknown object types, malformed
payloads and future event versions all become `UnknownEvent` with the raw
payload kept for inspection.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import InvalidOperation
from typing import Any, Callable, Optional

from core.logging_config import get_logger
from domain.payment.events import (
    ChargeFailed,
    ChargeSucceeded,
    OrderExpired,
    RefundSucceeded,
    UnknownEvent,
    WebhookEvent,
)
from domain.payment.money import from_minor_units


logger = get_logger(__name__)

DEFAULT_FAILURE_REASON = "Payment failed"


def _timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    seconds = float(value)
    if seconds > 1e11:  # milliseconds
        seconds /= 1000
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _decode_charge_succeeded(data: dict[str, Any]) -> ChargeSucceeded:
    return ChargeSucceeded(
        charge_id=str(data["id"]),
        amount=from_minor_units(int(data["amount"])),
        currency=data.get("currency_code"),
        email=data.get("email"),
        metadata=dict(data.get("metadata") or {}),
        created_at=_timestamp(data.get("creation_date")),
    )


def _decode_charge_failed(data: dict[str, Any]) -> ChargeFailed:
    outcome = data.get("outcome")
    if not isinstance(outcome, dict):
        outcome = {}
    return ChargeFailed(
        charge_id=str(data["id"]),
        email=data.get("email"),
        reason=outcome.get("user_message") or DEFAULT_FAILURE_REASON,
        error_code=outcome.get("code"),
    )


def _decode_order_expired(data: dict[str, Any]) -> OrderExpired:
    return OrderExpired(
        order_id=str(data["id"]),
        order_number=data.get("order_number"),
    )


def _decode_refund_succeeded(data: dict[str, Any]) -> RefundSucceeded:
    return RefundSucceeded(
        refund_id=str(data["id"]),
        charge_id=data.get("charge_id"),
        amount=from_minor_units(int(data["amount"])),
        reason=data.get("reason"),
    )


class WebhookProcessor:
    provider = "culqi"

    DECODERS: dict[str, Callable[[dict[str, Any]], WebhookEvent]] = {
        "event.charge.succeeded": _decode_charge_succeeded,
        "event.charge.failed": _decode_charge_failed,
        "event.order.expired": _decode_order_expired,
        "event.refund.succeeded": _decode_refund_succeeded,
    }

    def parse(self, body: bytes) -> WebhookEvent:
        """Decode a raw HTTP body, then normalize it."""
        try:
            raw = json.loads(body or b"null")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return self._unknown(None, body.decode("utf-8", errors="replace"), reason=f"invalid json: {exc}")
        return self.process(raw)

    def process(self, raw: Any) -> WebhookEvent:
        if not isinstance(raw, dict):
            return self._unknown(None, raw, reason="payload is not an object")

        object_type = raw.get("object")
        decoder = self.DECODERS.get(object_type) if isinstance(object_type, str) else None
        if decoder is None:
            return self._unknown(object_type, raw, reason="unrecognized object type")

        data = raw.get("data")
        if isinstance(data, str):
            # some gateway versions send `data` as an embedded JSON document
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                return self._unknown(object_type, raw, reason="data is not valid json")
        if not isinstance(data, dict):
            return self._unknown(object_type, raw, reason="data is not an object")

        try:
            event = decoder(data)
        except (KeyError, TypeError, ValueError, InvalidOperation, OverflowError) as exc:
            return self._unknown(object_type, raw, reason=f"malformed {object_type}: {exc!r}")

        logger.info(
            "payment_webhook_processed",
            provider=self.provider,
            kind=event.kind.value,
            reference_id=event.reference_id,
        )
        return event

    def _unknown(self, object_type: Any, raw: Any, *, reason: str) -> UnknownEvent:
        logger.warning(
            "payment_webhook_unknown",
            provider=self.provider,
            object_type=object_type,
            reason=reason,
        )
        return UnknownEvent(object_type=str(object_type) if object_type is not None else None, raw=raw)
