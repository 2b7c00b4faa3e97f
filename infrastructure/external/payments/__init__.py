"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Any, Optional

from core.settings import PaymentSettings, get_payment_settings
from application.ports.payment_gateway import PaymentGateway


def get_payment_gateway(
    settings: Optional[PaymentSettings] = None,
    provider: Optional[str] = None,
    **kwargs: Any,
) -> PaymentGateway:
    """Build a fresh gateway client; the caller owns it and must `aclose()` it."""
    settings = settings or get_payment_settings()
    name = (provider or "culqi").lower()
    if name == "culqi":
        from .culqi_client import CulqiClient
        return CulqiClient(settings, **kwargs)
    raise ValueError(f"Unsupported payment provider: {name}")
