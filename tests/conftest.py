"""Pytest bootstrap configuration.

Ensure environment defaults are set before test collection and module
imports that depend on application settings, and provide the fakes shared
by the payment tests (recording sleep, scripted gateway, client factory).
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

import httpx
import pytest

from core.settings import CulqiSettings, PaymentSettings
from infrastructure.external.payments.culqi_client import CulqiClient


FIXED_NOW = 1_700_000_000


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested delays without waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class ScriptedGateway:
    """httpx.MockTransport handler replaying queued responses.

    The last queued item is repeated once the queue runs dry. Exceptions are
    raised as if the network failed.
    """

    def __init__(self, *responses):
        self.responses = list(responses) or [httpx.Response(200, json={})]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def make_settings(secret_key="sk_test_123", **overrides) -> PaymentSettings:
    return PaymentSettings(_env_file=None, culqi=CulqiSettings(secret_key=secret_key), **overrides)


@pytest.fixture
def payment_settings() -> PaymentSettings:
    return make_settings()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_client(sleeps):
    """Factory: CulqiClient over an in-memory transport driven by a ScriptedGateway."""

    def _make(gateway: ScriptedGateway, settings: PaymentSettings | None = None) -> CulqiClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(gateway))
        return CulqiClient(
            settings or make_settings(),
            http_client=http_client,
            sleep=sleeps,
            clock=lambda: FIXED_NOW,
        )

    return _make
