"""
PICO Purchase Validator Implementation.

NO DICTIONARIES - All data uses strongly typed models.

Verifies in-app purchases against the PICO platform server API. Every
failure mode is reported as an unsuccessful ValidationResult; nothing is
retried.
"""

import time

import httpx
from structlog import get_logger

from purchase_gateway.exceptions import (
    VerificationError,
    VerificationServerError,
    VerificationTimeoutError,
    VerificationUnavailableError,
)
from purchase_gateway.models.domain import PurchaseClaim, ValidationResult
from purchase_gateway.models.pico import PicoConfig, PicoVerificationResponse
from purchase_gateway.observability.metrics import metrics
from purchase_gateway.observability.tracing import add_span_attributes, trace_operation
from purchase_gateway.services.signing import SIGNATURE_FIELD, PlaceholderSigner, RequestSigner

logger = get_logger(__name__)


class PicoPurchaseValidator:
    """
    PICO in-app purchase validator.

    Signs the purchase check request and interprets PICO's {ret, msg} answer.
    """

    name = "pico"

    def __init__(
        self,
        config: PicoConfig,
        signer: RequestSigner | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize PICO validator.

        Args:
            config: PICO API configuration
            signer: Signing strategy (defaults to the placeholder signer)
            transport: Optional httpx transport, used to stub the remote API
        """
        self.config = config
        self.signer = signer or PlaceholderSigner(config.app_secret)
        self._transport = transport

        logger.info(
            "pico_validator_initialized",
            app_id=config.app_id,
            validation_url=config.validation_url,
            timeout_seconds=config.timeout_seconds,
        )

    def build_request(self, claim: PurchaseClaim) -> dict[str, str]:
        """Build the signed purchase check payload."""
        request_data = {
            "app_id": self.config.app_id,
            "user_id": claim.user_id,
            "product_id": claim.product_id,
            "purchase_token": claim.purchase_token,
        }
        request_data[SIGNATURE_FIELD] = self.signer.sign(request_data)
        return request_data

    async def _post(self, payload: dict[str, str]) -> dict[str, object]:
        """
        POST the purchase check to PICO.

        Raises:
            VerificationTimeoutError: If PICO does not answer within the timeout
            VerificationServerError: If PICO answers with a non-2xx status
            VerificationUnavailableError: On any other transport fault
        """
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.config.user_agent,
        }

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self.config.timeout_seconds,
            follow_redirects=True,
        ) as client:
            try:
                response = await client.post(
                    self.config.validation_url,
                    json=payload,
                    headers=headers,
                )
            except httpx.TimeoutException as exc:
                raise VerificationTimeoutError(self.config.timeout_seconds) from exc
            except httpx.HTTPError as exc:
                raise VerificationUnavailableError(str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            logger.error(
                "pico_api_error",
                status=response.status_code,
                error=response.text[:500],
            )
            raise VerificationServerError(response.status_code)

        try:
            body = response.json()
        except ValueError:
            logger.warning("pico_api_invalid_json", body_preview=response.text[:200])
            return {}

        return body if isinstance(body, dict) else {}

    async def validate(self, claim: PurchaseClaim) -> ValidationResult:
        """
        Verify a purchase with the PICO server API.

        Args:
            claim: Purchase to verify

        Returns:
            Validation result; failures carry a cause-specific message
        """
        request_data = self.build_request(claim)
        logger.info(
            "calling_pico_verification_api",
            url=self.config.validation_url,
            product_id=claim.product_id,
        )

        start = time.perf_counter()
        try:
            with trace_operation(
                "pico_purchase_verification",
                product_id=claim.product_id,
                user_id=claim.user_id,
            ) as span:
                body = await self._post(request_data)
                pico_response = PicoVerificationResponse.from_payload(body)
                add_span_attributes(span, ret=pico_response.ret, msg=pico_response.msg)
        except VerificationError as exc:
            metrics.record_error(type(exc).__name__, "pico_verification")
            logger.error("pico_verification_request_failed", error=str(exc))
            return ValidationResult.rejected(claim.product_id, self._failure_message(exc))
        finally:
            metrics.record_verification(self.name, time.perf_counter() - start)

        logger.info(
            "pico_api_response",
            ret=pico_response.ret,
            msg=pico_response.msg,
        )

        if pico_response.is_ok():
            return ValidationResult.approved(claim.product_id, "purchase verified")

        return ValidationResult.rejected(
            claim.product_id,
            f"verification failed: {pico_response.failure_reason()}",
        )

    @staticmethod
    def _failure_message(exc: VerificationError) -> str:
        if isinstance(exc, VerificationTimeoutError):
            return "verification request timed out"
        if isinstance(exc, VerificationServerError):
            return f"verification server error: {exc.status_code}"
        return "verification service temporarily unavailable"
