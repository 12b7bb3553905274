"""
Pytest Configuration and Centralized Fixtures.

Provides reusable fixtures for testing:
- Dedup store with a controllable clock
- Stubbed PICO API (httpx.MockTransport)
- Validators and verification service
- API test client with dependency overrides
"""

import os
from collections.abc import Callable, Generator

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Set environment variables BEFORE importing application modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SIMULATED_DELAY_SECONDS", "0")
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

from purchase_gateway.api.dependencies import (
    build_verification_service,
    get_purchase_store,
    get_verification_service,
)
from purchase_gateway.config import settings
from purchase_gateway.models.domain import PurchaseClaim
from purchase_gateway.models.pico import PicoConfig
from purchase_gateway.services.pico_provider import PicoPurchaseValidator
from purchase_gateway.services.purchase_store import InMemoryPurchaseStore
from purchase_gateway.services.simulated_provider import SimulatedPurchaseValidator
from purchase_gateway.services.verification import PurchaseVerificationService

PicoHandler = Callable[[httpx.Request], httpx.Response]

# ============================================================================
# Clock / Store Fixtures
# ============================================================================


class FakeClock:
    """Manually advanced clock (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def purchase_store(clock: FakeClock) -> InMemoryPurchaseStore:
    """Empty dedup store driven by the fake clock."""
    return InMemoryPurchaseStore(ttl_seconds=24 * 60 * 60, clock=clock)


# ============================================================================
# PICO API Fixtures
# ============================================================================


@pytest.fixture
def pico_config() -> PicoConfig:
    return PicoConfig(
        app_id="test_app_id",
        app_secret="test_app_secret",
        validation_url="https://pico.test/platform/serverapi/purchase/check",
        timeout_seconds=8.0,
    )


@pytest.fixture
def pico_requests() -> list[httpx.Request]:
    """Requests captured by the stubbed PICO API."""
    return []


@pytest.fixture
def pico_responder(pico_requests: list[httpx.Request]):
    """
    Factory for a stubbed PICO API transport.

    Usage:
        transport = pico_responder(lambda req: httpx.Response(200, json={"ret": 0}))
    """

    def _create(handler: PicoHandler) -> httpx.MockTransport:
        def _record(request: httpx.Request) -> httpx.Response:
            pico_requests.append(request)
            return handler(request)

        return httpx.MockTransport(_record)

    return _create


@pytest.fixture
def pico_ok_transport(pico_responder) -> httpx.MockTransport:
    return pico_responder(lambda request: httpx.Response(200, json={"ret": 0, "msg": "ok"}))


@pytest.fixture
def pico_validator(pico_config: PicoConfig, pico_ok_transport) -> PicoPurchaseValidator:
    return PicoPurchaseValidator(pico_config, transport=pico_ok_transport)


@pytest.fixture
def simulated_validator() -> SimulatedPurchaseValidator:
    return SimulatedPurchaseValidator(delay_seconds=0)


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def verification_service(
    purchase_store: InMemoryPurchaseStore,
    pico_validator: PicoPurchaseValidator,
    simulated_validator: SimulatedPurchaseValidator,
) -> PurchaseVerificationService:
    return PurchaseVerificationService(
        store=purchase_store,
        live_validator=pico_validator,
        simulated_validator=simulated_validator,
        live_platforms={"pico"},
    )


@pytest.fixture
def simulated_claim() -> PurchaseClaim:
    return PurchaseClaim(
        product_id="p1",
        purchase_token="test_abc",
        user_id="u1",
        platform="simulated",
    )


@pytest.fixture
def pico_claim() -> PurchaseClaim:
    return PurchaseClaim(
        product_id="gem_pack_100",
        purchase_token="pico_token_0001",
        user_id="user_42",
        platform="pico",
    )


# ============================================================================
# API Client Fixtures
# ============================================================================


@pytest.fixture
def app(
    purchase_store: InMemoryPurchaseStore, pico_ok_transport: httpx.MockTransport
) -> Generator[FastAPI, None, None]:
    """Application with a fresh dedup store and a stubbed PICO API."""
    from purchase_gateway.main import app as fastapi_app

    service = build_verification_service(settings, purchase_store, transport=pico_ok_transport)
    fastapi_app.dependency_overrides[get_purchase_store] = lambda: purchase_store
    fastapi_app.dependency_overrides[get_verification_service] = lambda: service

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Synchronous test client."""
    return TestClient(app)
