"""
FastAPI Dependencies - Request context and service wiring.

NO DICTIONARIES - All dependencies return typed objects.

The dedup store and verification service are owned by the application
(app.state) and injected into routes, never imported as module globals.
"""

import secrets
import string
import time
from dataclasses import dataclass, field

import httpx
from fastapi import Request

from purchase_gateway.config import Settings
from purchase_gateway.models.pico import PicoConfig
from purchase_gateway.services.pico_provider import PicoPurchaseValidator
from purchase_gateway.services.purchase_store import InMemoryPurchaseStore, PurchaseStore
from purchase_gateway.services.signing import PlaceholderSigner, RequestSigner
from purchase_gateway.services.simulated_provider import SimulatedPurchaseValidator
from purchase_gateway.services.verification import PurchaseVerificationService

_REQUEST_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_request_id() -> str:
    """Generate a request correlation ID: req_<epoch ms>_<9 random chars>."""
    suffix = "".join(secrets.choice(_REQUEST_ID_ALPHABET) for _ in range(9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


# ============================================================================
# Request Context
# ============================================================================


@dataclass
class RequestContext:
    """Per-request correlation ID and timer."""

    request_id: str
    start_time: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.start_time) * 1000)


def get_request_context(request: Request) -> RequestContext:
    """
    FastAPI dependency returning the context created by the request middleware.

    Falls back to a fresh context when the middleware did not run.
    """
    context = getattr(request.state, "context", None)
    if context is None:
        context = RequestContext(request_id=generate_request_id())
        request.state.context = context
    return context


# ============================================================================
# Service Wiring
# ============================================================================


def build_purchase_store(settings: Settings) -> InMemoryPurchaseStore:
    return InMemoryPurchaseStore(ttl_seconds=settings.dedup_ttl_seconds)


def build_verification_service(
    settings: Settings,
    store: PurchaseStore,
    signer: RequestSigner | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PurchaseVerificationService:
    """
    Assemble the verification service from settings.

    Args:
        settings: Application settings
        store: Dedup store owned by the caller
        signer: Signing strategy for PICO requests
        transport: Optional httpx transport for the PICO client
    """
    pico_config = PicoConfig(
        app_id=settings.pico_app_id,
        app_secret=settings.pico_app_secret,
        validation_url=settings.pico_validation_url,
        timeout_seconds=settings.pico_timeout_seconds,
        user_agent=settings.pico_user_agent,
    )
    return PurchaseVerificationService(
        store=store,
        live_validator=PicoPurchaseValidator(
            pico_config,
            signer=signer or PlaceholderSigner(pico_config.app_secret),
            transport=transport,
        ),
        simulated_validator=SimulatedPurchaseValidator(
            delay_seconds=settings.simulated_delay_seconds
        ),
        live_platforms=settings.live_platform_ids,
    )


def get_purchase_store(request: Request) -> PurchaseStore:
    """FastAPI dependency returning the application's dedup store."""
    store: PurchaseStore = request.app.state.purchase_store
    return store


def get_verification_service(request: Request) -> PurchaseVerificationService:
    """FastAPI dependency returning the application's verification service."""
    service: PurchaseVerificationService = request.app.state.verification_service
    return service
