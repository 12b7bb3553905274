"""
Tests for the PICO purchase validator.

The PICO API is stubbed with httpx.MockTransport.
"""

import json

import httpx
import pytest

from purchase_gateway.models.domain import PurchaseClaim
from purchase_gateway.models.pico import PicoConfig
from purchase_gateway.services.pico_provider import PicoPurchaseValidator


def _validator(pico_config: PicoConfig, pico_responder, handler) -> PicoPurchaseValidator:
    return PicoPurchaseValidator(pico_config, transport=pico_responder(handler))


class TestPicoVerificationOutcomes:
    """Tests for interpretation of the PICO response."""

    @pytest.mark.asyncio
    async def test_ret_zero_is_success(self, pico_config, pico_responder, pico_claim):
        """{ret: 0} means the purchase is verified."""
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(200, json={"ret": 0})
        )

        result = await validator.validate(pico_claim)

        assert result.success is True
        assert result.is_duplicate is False
        assert result.message == "purchase verified"
        assert result.validated_product_id == pico_claim.product_id

    @pytest.mark.asyncio
    async def test_nonzero_ret_with_message(self, pico_config, pico_responder, pico_claim):
        """Remote msg is surfaced in the failure message."""
        validator = _validator(
            pico_config,
            pico_responder,
            lambda r: httpx.Response(200, json={"ret": 7, "msg": "expired"}),
        )

        result = await validator.validate(pico_claim)

        assert result.success is False
        assert "expired" in result.message
        assert result.message == "verification failed: expired"
        assert result.validated_product_id == pico_claim.product_id

    @pytest.mark.asyncio
    async def test_nonzero_ret_without_message(self, pico_config, pico_responder, pico_claim):
        """Without msg, the return code is reported."""
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(200, json={"ret": 1003})
        )

        result = await validator.validate(pico_claim)

        assert result.success is False
        assert result.message == "verification failed: error code: 1003"

    @pytest.mark.asyncio
    async def test_string_zero_is_not_success(self, pico_config, pico_responder, pico_claim):
        """ret must be the number 0, not a string."""
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(200, json={"ret": "0"})
        )

        result = await validator.validate(pico_claim)

        assert result.success is False

    @pytest.mark.asyncio
    async def test_non_json_body(self, pico_config, pico_responder, pico_claim):
        """A 200 with a non-JSON body is a failed verification."""
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(200, text="<html>")
        )

        result = await validator.validate(pico_claim)

        assert result.success is False
        assert result.message == "verification failed: error code: unknown"

    @pytest.mark.asyncio
    async def test_json_array_body(self, pico_config, pico_responder, pico_claim):
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(200, json=[0])
        )

        result = await validator.validate(pico_claim)

        assert result.success is False


class TestPicoTransportFailures:
    """Tests for timeouts, HTTP errors and connection failures."""

    @pytest.mark.asyncio
    async def test_timeout(self, pico_config, pico_responder, pico_claim):
        """A timeout is reported as such."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        validator = _validator(pico_config, pico_responder, handler)

        result = await validator.validate(pico_claim)

        assert result.success is False
        assert result.message == "verification request timed out"
        assert result.validated_product_id == pico_claim.product_id

    @pytest.mark.asyncio
    async def test_connect_timeout(self, pico_config, pico_responder, pico_claim):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("connect timed out", request=request)

        validator = _validator(pico_config, pico_responder, handler)

        result = await validator.validate(pico_claim)

        assert "timed out" in result.message

    @pytest.mark.asyncio
    async def test_server_error_status(self, pico_config, pico_responder, pico_claim):
        """Non-2xx statuses are reported with the status code."""
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(503, text="unavailable")
        )

        result = await validator.validate(pico_claim)

        assert result.success is False
        assert result.message == "verification server error: 503"

    @pytest.mark.asyncio
    async def test_client_error_status(self, pico_config, pico_responder, pico_claim):
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(401, json={"ret": 0})
        )

        result = await validator.validate(pico_claim)

        assert result.success is False
        assert result.message == "verification server error: 401"

    @pytest.mark.asyncio
    async def test_connection_error(self, pico_config, pico_responder, pico_claim):
        """Other transport faults map to a generic unavailable message."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        validator = _validator(pico_config, pico_responder, handler)

        result = await validator.validate(pico_claim)

        assert result.success is False
        assert result.message == "verification service temporarily unavailable"


class TestPicoRequest:
    """Tests for the outbound request."""

    @pytest.mark.asyncio
    async def test_request_payload_and_headers(
        self, pico_config, pico_responder, pico_requests, pico_claim
    ):
        """Request carries app_id, purchase fields and a signature."""
        validator = _validator(
            pico_config, pico_responder, lambda r: httpx.Response(200, json={"ret": 0})
        )

        await validator.validate(pico_claim)

        assert len(pico_requests) == 1
        request = pico_requests[0]
        assert request.method == "POST"
        assert str(request.url) == pico_config.validation_url
        assert request.headers["User-Agent"] == "PICO-Payment-Server/1.0"
        assert request.headers["Content-Type"] == "application/json"

        payload = json.loads(request.content)
        assert payload["app_id"] == "test_app_id"
        assert payload["user_id"] == pico_claim.user_id
        assert payload["product_id"] == pico_claim.product_id
        assert payload["purchase_token"] == pico_claim.purchase_token
        assert payload["sign"].startswith("demo_signature_")

    @pytest.mark.asyncio
    async def test_custom_signer_used(self, pico_config, pico_responder, pico_requests):
        """The signing strategy is pluggable."""

        class FixedSigner:
            def __init__(self) -> None:
                self.seen: list[dict] = []

            def sign(self, fields):
                self.seen.append(dict(fields))
                return "fixed"

        signer = FixedSigner()
        validator = PicoPurchaseValidator(
            pico_config,
            signer=signer,
            transport=pico_responder(lambda r: httpx.Response(200, json={"ret": 0})),
        )
        claim = PurchaseClaim(product_id="p", purchase_token="tok", user_id="u")

        await validator.validate(claim)

        assert json.loads(pico_requests[0].content)["sign"] == "fixed"
        assert "sign" not in signer.seen[0]

    def test_build_request(self, pico_config, pico_claim):
        validator = PicoPurchaseValidator(pico_config)

        payload = validator.build_request(pico_claim)

        assert set(payload) == {"app_id", "user_id", "product_id", "purchase_token", "sign"}
