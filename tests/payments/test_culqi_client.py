import json
from decimal import Decimal

import httpx
import pytest

from application.dtos.payments import CreateCharge, CreateOrder, CustomerDetails, RefundCharge
from conftest import FIXED_NOW, ScriptedGateway, make_settings
from domain.payment.events import ChargeSucceeded, UnknownEvent


CHARGE = {"id": "chr_test_abc", "object": "charge", "amount": 1999, "currency_code": "PEN"}


def charge_request(**overrides) -> CreateCharge:
    data = {
        "amount": Decimal("19.99"),
        "currency": "PEN",
        "email": "buyer@example.com",
        "description": "Pre-order: Mechanical keyboard",
        "order_number": "ORD-1",
    }
    data.update(overrides)
    return CreateCharge(**data)


def customer() -> CustomerDetails:
    return CustomerDetails(
        first_name="Ana",
        last_name="Quispe",
        email="ana@example.com",
        phone_number="999888777",
        address="Av. Arequipa 123",
        city="Lima",
    )


def sent_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.mark.asyncio
async def test_charge_with_bad_token_never_reaches_gateway(make_client):
    gateway = ScriptedGateway(httpx.Response(201, json=CHARGE))
    client = make_client(gateway)

    result = await client.create_charge("card_123", charge_request())

    assert result.success is False
    assert result.error_code == "invalid_token"
    assert gateway.requests == []


@pytest.mark.asyncio
async def test_charge_below_minimum_never_reaches_gateway(make_client):
    gateway = ScriptedGateway(httpx.Response(201, json=CHARGE))
    client = make_client(gateway)

    result = await client.create_charge("tkn_test_1", charge_request(amount=Decimal("0.99")))

    assert result.success is False
    assert result.error_code == "amount_too_small"
    assert result.retryable is False
    assert gateway.requests == []


@pytest.mark.asyncio
async def test_charge_in_unsupported_currency_never_reaches_gateway(make_client):
    gateway = ScriptedGateway(httpx.Response(201, json=CHARGE))
    client = make_client(gateway)

    result = await client.create_charge("tkn_test_1", charge_request(currency="EUR"))

    assert result.error_code == "unsupported_currency"
    assert gateway.requests == []


@pytest.mark.asyncio
async def test_charge_without_secret_is_configuration_error(make_client, sleeps):
    gateway = ScriptedGateway(httpx.Response(201, json=CHARGE))
    client = make_client(gateway, make_settings(secret_key=None))

    result = await client.create_charge("tkn_test_1", charge_request())

    assert result.success is False
    assert result.error_code == "configuration_error"
    assert result.retryable is False
    assert gateway.requests == []
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_charge_request_body(make_client):
    gateway = ScriptedGateway(httpx.Response(201, json=CHARGE))
    client = make_client(gateway)
    req = charge_request(
        customer=customer(),
        idempotency_key="idem-charge-1",
        metadata={"campaign": "launch", "token": "tkn_leak", "quantity": 2, "note": None},
    )

    result = await client.create_charge("tkn_test_1", req)

    assert result.success is True
    assert result.data == CHARGE
    assert len(gateway.requests) == 1
    request = gateway.requests[0]
    assert request.url.path == "/v2/charges"
    assert request.headers["Idempotency-Key"] == "idem-charge-1"

    body = sent_json(request)
    assert body["amount"] == 1999
    assert body["currency_code"] == "PEN"
    assert body["email"] == "buyer@example.com"
    assert body["source_id"] == "tkn_test_1"
    assert body["metadata"] == {"campaign": "launch", "quantity": "2", "order_number": "ORD-1"}
    assert body["antifraud_details"] == {
        "first_name": "Ana",
        "last_name": "Quispe",
        "address": "Av. Arequipa 123",
        "address_city": "Lima",
        "phone_number": "999888777",
    }


@pytest.mark.asyncio
async def test_charge_currency_defaults_to_soles(make_client):
    gateway = ScriptedGateway(httpx.Response(201, json=CHARGE))
    client = make_client(gateway)
    req = CreateCharge(amount=Decimal("19.99"), email="buyer@example.com", description="Keyboard")

    result = await client.create_charge("tkn_test_1", req)

    assert result.success is True
    assert sent_json(gateway.requests[0])["currency_code"] == "PEN"
    assert "public_key" not in make_settings().culqi.model_dump()


@pytest.mark.asyncio
async def test_declined_charge_is_single_attempt(make_client, sleeps):
    decline = {
        "object": "error",
        "type": "card_error",
        "code": "card_declined",
        "decline_code": "stolen_card",
        "merchant_message": "La tarjeta fue reportada como robada",
        "user_message": "Your card was declined.",
    }
    gateway = ScriptedGateway(httpx.Response(402, json=decline))
    client = make_client(gateway)

    result = await client.create_charge("tkn_test_1", charge_request())

    assert len(gateway.requests) == 1
    assert sleeps.calls == []
    assert result.success is False
    assert result.retryable is False
    assert result.error_code == "stolen_card"
    assert result.error == "Your card was declined."


@pytest.mark.asyncio
async def test_charge_retries_through_timeouts(make_client, sleeps):
    gateway = ScriptedGateway(httpx.ReadTimeout("read timed out"), httpx.Response(201, json=CHARGE))
    client = make_client(gateway)

    result = await client.create_charge("tkn_test_1", charge_request(idempotency_key="idem-2"))

    assert result.success is True
    assert sleeps.calls == [1.0]
    assert [r.headers["Idempotency-Key"] for r in gateway.requests] == ["idem-2", "idem-2"]


@pytest.mark.asyncio
async def test_get_charge_validates_id_prefix(make_client):
    gateway = ScriptedGateway(httpx.Response(200, json=CHARGE))
    client = make_client(gateway)

    result = await client.get_charge("ord_123")

    assert result.error_code == "invalid_charge_id"
    assert gateway.requests == []


@pytest.mark.asyncio
async def test_get_charge_uses_same_retry_policy(make_client, sleeps):
    gateway = ScriptedGateway(httpx.Response(503), httpx.Response(200, json=CHARGE))
    client = make_client(gateway)

    result = await client.get_charge("chr_test_abc")

    assert result.success is True
    assert sleeps.calls == [1.0]
    assert gateway.requests[-1].method == "GET"
    assert gateway.requests[-1].url.path == "/v2/charges/chr_test_abc"


@pytest.mark.asyncio
async def test_corrupt_gateway_body_returns_failed_result(make_client, sleeps):
    corrupt = httpx.Response(200, headers={"content-encoding": "gzip"}, stream=httpx.ByteStream(b"not-gzip"))
    gateway = ScriptedGateway(corrupt)
    client = make_client(gateway)

    result = await client.get_charge("chr_1")

    assert result.success is False
    assert result.error_code == "unknown"
    assert result.retryable is False
    assert len(gateway.requests) == 1
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_refund_body_and_floor(make_client):
    refund = {"id": "ref_test_1", "object": "refund", "amount": 500}
    gateway = ScriptedGateway(httpx.Response(201, json=refund))
    client = make_client(gateway)

    too_small = await client.refund_charge(RefundCharge(charge_id="chr_test_abc", amount=Decimal("0.50")))
    assert too_small.error_code == "amount_too_small"
    assert gateway.requests == []

    result = await client.refund_charge(
        RefundCharge(charge_id="chr_test_abc", amount=Decimal("5.00"), reason="duplicado")
    )
    assert result.success is True
    assert gateway.requests[0].url.path == "/v2/refunds"
    assert sent_json(gateway.requests[0]) == {"amount": 500, "charge_id": "chr_test_abc", "reason": "duplicado"}


@pytest.mark.asyncio
async def test_create_order_body(make_client):
    order = {"id": "ord_test_1", "object": "order", "state": "pending"}
    gateway = ScriptedGateway(httpx.Response(201, json=order))
    client = make_client(gateway)
    req = CreateOrder(
        amount=Decimal("100"),
        currency="PEN",
        description="Pre-order",
        order_number="ORD-1",
        customer_details=customer(),
        expiration_days=7,
    )

    result = await client.create_order(req)

    assert result.success is True
    body = sent_json(gateway.requests[0])
    assert gateway.requests[0].url.path == "/v2/orders"
    assert body["amount"] == 10000
    assert body["currency_code"] == "PEN"
    assert body["order_number"] == "ORD-1"
    assert body["expiration_date"] == FIXED_NOW + 604800
    assert body["client_details"] == {
        "first_name": "Ana",
        "last_name": "Quispe",
        "email": "ana@example.com",
        "phone_number": "999888777",
    }
    assert body["metadata"] == {"order_number": "ORD-1"}


@pytest.mark.asyncio
async def test_order_expiration_defaults_to_configured_days(make_client):
    client = make_client(ScriptedGateway())
    assert client.order_expiration() == FIXED_NOW + 7 * 86400
    assert client.order_expiration(3) == FIXED_NOW + 3 * 86400


def test_parse_webhook_accepts_bytes_and_dicts(make_client):
    client = make_client(ScriptedGateway())
    payload = {
        "object": "event.charge.succeeded",
        "data": {"id": "chr_test_abc", "amount": 1999, "currency_code": "PEN", "email": "buyer@example.com"},
    }

    from_dict = client.parse_webhook(payload)
    from_bytes = client.parse_webhook(json.dumps(payload).encode())

    assert isinstance(from_dict, ChargeSucceeded)
    assert isinstance(from_bytes, ChargeSucceeded)
    assert from_bytes.amount == Decimal("19.99")
    assert isinstance(client.parse_webhook(b"not json"), UnknownEvent)
