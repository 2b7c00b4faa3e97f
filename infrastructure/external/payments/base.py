"""
Base payment client implementing shared concerns: http, retry, logging.

Concrete providers subclass and implement request building and webhook
decoding; every network call goes through `_call`.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from core.logging_config import get_logger
from core.settings import PaymentSettings
from domain.payment.result import AttemptResult
from infrastructure.external.payments.classifier import ErrorClassifier
from infrastructure.external.payments.retry import RetryingClient, RetryPolicy, SleepFn
from infrastructure.external.payments.transport import GatewayTransport, HTTPMethod


logger = get_logger(__name__)

# Keys that must never travel inside gateway metadata
SENSITIVE_METADATA_KEYS = frozenset({
    "token", "source_id", "secret", "secret_key", "password", "card_number", "cvv", "cvc",
})


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        secret_key: Optional[str],
        settings: PaymentSettings,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.classifier = ErrorClassifier(provider=self.provider)
        self.transport = GatewayTransport(
            base_url,
            secret_key,
            timeout=settings.timeouts.total,
            connect_timeout=settings.timeouts.connect,
            client=http_client,
        )
        self.retrying = RetryingClient(
            self.classifier,
            RetryPolicy(
                max_retries=settings.retry.max_retries,
                base_delay_ms=settings.retry.base_delay_ms,
            ),
            sleep=sleep,
        )

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        await self.transport.aclose()

    async def _call(
        self,
        operation: str,
        method: HTTPMethod,
        endpoint: str,
        body: Optional[dict[str, Any]] = None,
        *,
        idempotency_key: Optional[str] = None,
    ) -> AttemptResult[Any]:
        async def _once():
            return await self.transport.send(endpoint, method, body, idempotency_key=idempotency_key)

        return await self.retrying.execute(operation, _once)

    # Helpers
    @staticmethod
    def _sanitize_metadata(metadata: Optional[dict[str, Any]]) -> dict[str, str]:
        """Gateway metadata is a flat string map and never carries credentials."""
        out: dict[str, str] = {}
        for key, value in (metadata or {}).items():
            if value is None or str(key).lower() in SENSITIVE_METADATA_KEYS:
                continue
            out[str(key)] = str(value)
        return out

    @staticmethod
    def _first_failure(*results: AttemptResult[Any]) -> Optional[AttemptResult[Any]]:
        for result in results:
            if not result.success:
                return result
        return None

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
