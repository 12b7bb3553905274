"""
API Routes - FastAPI endpoints for purchase validation.

NO DICTIONARIES - All requests/responses use Pydantic models.

Validation failures are reported in the body (success=false) with HTTP 200;
callers must inspect the payload, not the status code. Only a wrong HTTP
method produces a non-200 status (405, see main.py).
"""

import json
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from structlog import get_logger

from purchase_gateway.api.dependencies import (
    RequestContext,
    get_purchase_store,
    get_request_context,
    get_verification_service,
)
from purchase_gateway.config import settings
from purchase_gateway.exceptions import MalformedRequestError
from purchase_gateway.models.api import (
    REQUIRED_PURCHASE_FIELDS,
    HealthResponse,
    PurchaseRequest,
    PurchaseValidationResponse,
)
from purchase_gateway.models.domain import PurchaseClaim, format_timestamp
from purchase_gateway.observability.metrics import metrics
from purchase_gateway.services.purchase_store import PurchaseStore
from purchase_gateway.services.verification import PurchaseVerificationService

logger = get_logger(__name__)

router = APIRouter()

VALIDATE_PURCHASE_PATH = "/api/validate-purchase"


async def _read_json_object(request: Request) -> dict[str, object]:
    """
    Read the request body as a JSON object.

    An empty body is read as {} so that it is reported as missing parameters.

    Raises:
        MalformedRequestError: If the body is not JSON or not an object
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise MalformedRequestError(f"request body is not valid JSON ({exc})") from exc
    if not isinstance(body, dict):
        raise MalformedRequestError("request body must be a JSON object")
    return body


def _failure(context: RequestContext, message: str) -> PurchaseValidationResponse:
    return PurchaseValidationResponse(
        success=False,
        message=message,
        request_id=context.request_id,
        processing_time=context.elapsed_ms(),
    )


@router.post(
    VALIDATE_PURCHASE_PATH,
    response_model=PurchaseValidationResponse,
    response_model_exclude_none=True,
)
async def validate_purchase(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    service: PurchaseVerificationService = Depends(get_verification_service),
) -> PurchaseValidationResponse:
    """
    Validate an in-app purchase receipt.

    Repeated submissions of the same (user_id, purchase_token) after a
    successful validation return success with is_duplicate=true.

    Any unexpected fault is reported as success=false with an
    "internal server error" message; it never surfaces as a 5xx.
    """
    logger.info("purchase_validation_received")

    try:
        body = await _read_json_object(request)

        try:
            purchase = PurchaseRequest.model_validate(body)
        except ValidationError as exc:
            fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
            logger.warning("purchase_validation_invalid_parameters", fields=fields)
            return _failure(context, f"invalid request parameters: {', '.join(fields)}")

        missing = purchase.missing_fields()
        if missing:
            logger.warning("purchase_validation_missing_parameters", missing=missing)
            return _failure(
                context,
                f"missing required parameters: {', '.join(REQUIRED_PURCHASE_FIELDS)}",
            )

        claim = PurchaseClaim(
            product_id=purchase.product_id or "",
            purchase_token=purchase.purchase_token or "",
            user_id=purchase.user_id or "",
            platform=purchase.platform,
        )
        logger.info(
            "purchase_validation_started",
            user_id=claim.user_id,
            product_id=claim.product_id,
            platform=claim.platform,
            app_version=purchase.app_version,
            device_id=purchase.device_id,
        )

        result = await service.verify(claim)

    except Exception as exc:
        logger.exception("purchase_validation_internal_error", error=str(exc))
        metrics.record_error(type(exc).__name__, "validate_purchase")
        return PurchaseValidationResponse(
            success=False,
            message=f"internal server error: {exc}",
            request_id=context.request_id,
            server_time=format_timestamp(datetime.now(UTC)),
            processing_time=context.elapsed_ms(),
        )

    processing_time = context.elapsed_ms()
    logger.info(
        "purchase_validation_completed",
        success=result.success,
        is_duplicate=result.is_duplicate,
        processing_time_ms=processing_time,
    )

    return PurchaseValidationResponse(
        success=result.success,
        message=result.message,
        validated_product_id=result.validated_product_id,
        is_duplicate=result.is_duplicate,
        server_time=format_timestamp(result.server_time),
        request_id=context.request_id,
        processing_time=processing_time,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: PurchaseStore = Depends(get_purchase_store),
) -> HealthResponse:
    """Liveness check with the current dedup cache size."""
    return HealthResponse(
        status="healthy",
        version=settings.api_version,
        environment=settings.environment,
        cached_purchases=len(store),
        timestamp=format_timestamp(datetime.now(UTC)),
    )
