"""
Single-attempt HTTP transport to the card gateway.

Provides:
- bearer authentication from a secret configured out of band
- bounded timeout per attempt (the in-flight request is cancelled by httpx)
- parsing of success bodies and gateway error bodies

Retries and classification live one layer up; `send` never raises for
network or gateway failures, it reports them in a `TransportResponse`.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx
import structlog

from core.logging_config import get_logger
from infrastructure.external.payments.classifier import GatewayError


logger = get_logger(__name__)


class HTTPMethod(Enum):
    """HTTP方法枚举"""
    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class TransportResponse:
    """Outcome of exactly one HTTP attempt."""
    ok: bool
    data: Any = None
    error: Optional[GatewayError] = None
    status_code: Optional[int] = None
    elapsed_ms: float = 0.0

    @classmethod
    def failure(cls, error: GatewayError, *, elapsed_ms: float = 0.0) -> "TransportResponse":
        return cls(ok=False, error=error, status_code=error.status_code, elapsed_ms=elapsed_ms)


class GatewayTransport:
    """
    Thin wrapper over `httpx.AsyncClient` bound to one gateway base URL.

    The secret is read once at construction. Pass `client` to reuse a shared
    `httpx.AsyncClient` (or one backed by `httpx.MockTransport` in tests);
    otherwise one is created lazily and closed by `aclose()`.
    """

    def __init__(
        self,
        base_url: str,
        secret_key: Optional[str],
        *,
        timeout: float = 30.0,
        connect_timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: str = "preorder-payments/1.0",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._secret_key = secret_key or None
        self.timeout = timeout
        self.connect_timeout = connect_timeout if connect_timeout is not None else timeout
        self._client = client
        self._owns_client = client is None
        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent,
        }

    @property
    def configured(self) -> bool:
        return self._secret_key is not None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def __aenter__(self) -> "GatewayTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.lstrip("/")
        return f"{self.base_url}/{endpoint}"

    def _build_headers(self, idempotency_key: Optional[str]) -> Dict[str, str]:
        headers = {**self.default_headers, "Authorization": f"Bearer {self._secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        request_id = structlog.contextvars.get_contextvars().get("request_id")
        if request_id:
            headers["X-Request-ID"] = str(request_id)
        return headers

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    async def send(
        self,
        endpoint: str,
        method: Union[str, HTTPMethod] = HTTPMethod.POST,
        body: Optional[Dict[str, Any]] = None,
        *,
        idempotency_key: Optional[str] = None,
    ) -> TransportResponse:
        if isinstance(method, HTTPMethod):
            method = method.value

        if not self.configured:
            logger.error("payment_gateway_not_configured", endpoint=endpoint)
            return TransportResponse.failure(GatewayError.not_configured())

        url = self._build_url(endpoint)
        start_time = datetime.now()
        try:
            response = await self._get_client().request(
                method=method,
                url=url,
                json=body,
                headers=self._build_headers(idempotency_key),
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
            )
        except httpx.RequestError as exc:
            # transport failures plus body decoding and redirect loops
            elapsed = (datetime.now() - start_time).total_seconds() * 1000
            logger.warning(
                "payment_gateway_transport_error",
                method=method,
                endpoint=endpoint,
                error_type=type(exc).__name__,
                elapsed_ms=round(elapsed, 2),
            )
            return TransportResponse.failure(GatewayError.from_exception(exc), elapsed_ms=elapsed)

        elapsed = (datetime.now() - start_time).total_seconds() * 1000
        data = self._parse_body(response)
        logger.debug(
            "payment_gateway_response",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
            elapsed_ms=round(elapsed, 2),
        )

        if response.is_success:
            return TransportResponse(ok=True, data=data, status_code=response.status_code, elapsed_ms=elapsed)
        return TransportResponse.failure(GatewayError.from_response(response.status_code, data), elapsed_ms=elapsed)
