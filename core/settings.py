"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Example `.env`:

    CULQI__SECRET_KEY=sk_test_xxx
    RETRY__MAX_RETRIES=3
    WEBHOOK__SHARED_SECRET=change-me

This module is isolated so core.config.Settings stays about the app itself.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator


class PaymentTimeouts(BaseModel):
    connect: float = 10.0
    total: float = 30.0


class PaymentRetry(BaseModel):
    max_retries: int = Field(default=3, ge=0)
    base_delay_ms: int = Field(default=1000, ge=0)


class WebhookSettings(BaseModel):
    shared_secret: Optional[str] = None  # expected in X-Webhook-Token when set
    ip_allowlist: list[str] | None = None  # Optional IPs/CIDRs allowed to post webhooks


class OrderSettings(BaseModel):
    expiration_days: int = Field(default=7, ge=1)


class CulqiSettings(BaseModel):
    secret_key: Optional[str] = None
    base_url: str = "https://api.culqi.com/v2"
    token_prefix: str = "tkn_"
    charge_prefix: str = "chr_"


class PaymentSettings(BaseSettings):
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    order: OrderSettings = Field(default_factory=OrderSettings)
    culqi: CulqiSettings = Field(default_factory=CulqiSettings)

    allowed_currencies: list[str] = Field(default_factory=lambda: ["PEN", "USD"])

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("allowed_currencies", mode="before")
    @classmethod
    def _parse_currencies(cls, v):
        """Normalize codes to upper case (env value is a JSON list, e.g. ALLOWED_CURRENCIES=["PEN"])."""
        if isinstance(v, str):
            return [item.strip().upper() for item in v.split(",") if item.strip()]
        return [str(item).upper() for item in v]

    @property
    def enabled(self) -> bool:
        return bool(self.culqi.secret_key)


@lru_cache
def get_payment_settings() -> PaymentSettings:
    return PaymentSettings()
