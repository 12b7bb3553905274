"""
Tests for FastAPI dependencies and service wiring.
"""

import re
from unittest.mock import MagicMock

from purchase_gateway.api.dependencies import (
    RequestContext,
    build_purchase_store,
    build_verification_service,
    generate_request_id,
    get_request_context,
)
from purchase_gateway.config import Settings
from purchase_gateway.services.pico_provider import PicoPurchaseValidator
from purchase_gateway.services.simulated_provider import SimulatedPurchaseValidator

REQUEST_ID_PATTERN = re.compile(r"^req_\d{13}_[a-z0-9]{9}$")


class TestRequestId:
    def test_format(self):
        assert REQUEST_ID_PATTERN.match(generate_request_id())

    def test_unique(self):
        assert len({generate_request_id() for _ in range(100)}) == 100


class TestRequestContext:
    def test_reuses_middleware_context(self):
        context = RequestContext(request_id="req_1")
        request = MagicMock()
        request.state.context = context

        assert get_request_context(request) is context

    def test_creates_context_when_missing(self):
        request = MagicMock()
        request.state.context = None

        context = get_request_context(request)

        assert REQUEST_ID_PATTERN.match(context.request_id)
        assert request.state.context is context

    def test_elapsed_ms_non_negative(self):
        assert RequestContext(request_id="req_1").elapsed_ms() >= 0


class TestServiceWiring:
    def test_build_from_settings(self):
        settings = Settings(
            live_platforms="pico,pico_cn",
            simulated_delay_seconds=0.1,
            dedup_ttl_seconds=3600,
            _env_file=None,
        )
        store = build_purchase_store(settings)

        service = build_verification_service(settings, store)

        assert store.ttl_seconds == 3600
        assert service.store is store
        assert service.live_platforms == frozenset({"pico", "pico_cn"})
        assert isinstance(service.live_validator, PicoPurchaseValidator)
        assert isinstance(service.simulated_validator, SimulatedPurchaseValidator)
        assert service.simulated_validator.delay_seconds == 0.1
        assert service.live_validator.config.timeout_seconds == 8.0
