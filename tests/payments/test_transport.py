import json

import httpx
import pytest
import structlog

from infrastructure.external.payments.classifier import ErrorCategory
from infrastructure.external.payments.transport import GatewayTransport, HTTPMethod


BASE_URL = "https://api.culqi.com/v2"


def transport_for(handler, secret_key="sk_test_123"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GatewayTransport(BASE_URL, secret_key, timeout=5.0, client=client), client


@pytest.mark.asyncio
async def test_send_posts_json_with_bearer_auth():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "chr_live_1", "object": "charge"})

    transport, client = transport_for(handler)
    response = await transport.send("/charges", HTTPMethod.POST, {"amount": 1999}, idempotency_key="idem-1")

    assert response.ok is True
    assert response.data == {"id": "chr_live_1", "object": "charge"}
    assert response.status_code == 201

    request = seen[0]
    assert str(request.url) == f"{BASE_URL}/charges"
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Bearer sk_test_123"
    assert request.headers["Idempotency-Key"] == "idem-1"
    assert json.loads(request.content) == {"amount": 1999}
    await client.aclose()


@pytest.mark.asyncio
async def test_send_forwards_bound_request_id():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    transport, client = transport_for(handler)
    structlog.contextvars.bind_contextvars(request_id="req-42")
    try:
        await transport.send("charges/chr_1", HTTPMethod.GET)
    finally:
        structlog.contextvars.clear_contextvars()

    assert seen[0].headers["X-Request-ID"] == "req-42"
    assert seen[0].method == "GET"
    await client.aclose()


@pytest.mark.asyncio
async def test_gateway_error_body_becomes_gateway_error():
    body = {
        "object": "error",
        "type": "card_error",
        "code": "card_declined",
        "merchant_message": "Tarjeta rechazada por el emisor",
        "user_message": "Your card was declined.",
    }
    transport, client = transport_for(lambda request: httpx.Response(402, json=body))

    response = await transport.send("/charges", HTTPMethod.POST, {})

    assert response.ok is False
    assert response.status_code == 402
    assert response.error.category is ErrorCategory.CARD_ERROR
    assert response.error.code == "card_declined"
    assert response.error.user_message == "Your card was declined."
    await client.aclose()


@pytest.mark.asyncio
async def test_non_json_error_falls_back_to_status():
    transport, client = transport_for(lambda request: httpx.Response(503, text="<html>upstream down</html>"))

    response = await transport.send("/charges", HTTPMethod.POST, {})

    assert response.ok is False
    assert response.error.category is ErrorCategory.API_CONNECTION
    assert response.error.status_code == 503
    await client.aclose()


@pytest.mark.asyncio
async def test_network_failure_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport, client = transport_for(handler)
    response = await transport.send("/charges", HTTPMethod.POST, {})

    assert response.ok is False
    assert response.error.category is ErrorCategory.API_CONNECTION
    assert isinstance(response.error.exception, httpx.ConnectError)
    await client.aclose()


@pytest.mark.asyncio
async def test_undecodable_body_is_reported_not_raised():
    def handler(request):
        return httpx.Response(200, headers={"content-encoding": "gzip"}, stream=httpx.ByteStream(b"not-gzip"))

    transport, client = transport_for(handler)
    response = await transport.send("/charges/chr_1", HTTPMethod.GET)

    assert response.ok is False
    assert response.error.category is ErrorCategory.UNKNOWN
    assert isinstance(response.error.exception, httpx.DecodingError)
    await client.aclose()


@pytest.mark.asyncio
async def test_missing_secret_makes_no_request():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    transport, client = transport_for(handler, secret_key=None)
    response = await transport.send("/charges", HTTPMethod.POST, {"amount": 1999})

    assert transport.configured is False
    assert response.ok is False
    assert response.error.category is ErrorCategory.CONFIGURATION
    assert seen == []
    await client.aclose()


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open():
    transport, client = transport_for(lambda request: httpx.Response(200, json={}))
    await transport.aclose()
    assert client.is_closed is False
    await client.aclose()
