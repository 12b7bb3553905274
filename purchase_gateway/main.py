"""
Main Application - FastAPI application setup.
"""

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from purchase_gateway.api.dependencies import (
    RequestContext,
    build_purchase_store,
    build_verification_service,
    generate_request_id,
    get_request_context,
)
from purchase_gateway.api.routes import router
from purchase_gateway.config import settings
from purchase_gateway.models.api import ErrorResponse
from purchase_gateway.observability import (
    get_logger,
    log_context,
    metrics,
    setup_logging,
    setup_tracing,
)
from purchase_gateway.observability.tracing import instrument_fastapi

# Setup logging before anything else
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(
        "application_starting",
        service=settings.api_title,
        version=settings.api_version,
        environment=settings.environment,
        live_platforms=sorted(settings.live_platform_ids),
        tracing_enabled=settings.tracing_enabled,
        metrics_enabled=settings.metrics_enabled,
    )
    if settings.uses_default_credentials:
        logger.warning(
            "pico_default_credentials_in_use",
            hint="set PICO_APP_ID and PICO_APP_SECRET before production use",
        )

    yield

    logger.info(
        "application_shutting_down",
        cached_purchases=len(app.state.purchase_store),
    )


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=settings.api_description,
    lifespan=lifespan,
)

# Process-local dedup state, owned by the application
app.state.purchase_store = build_purchase_store(settings)
app.state.verification_service = build_verification_service(settings, app.state.purchase_store)


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(
    request: Request, exc: StarletteHTTPException
) -> Response:
    """Answer 405 in the service's JSON shape; defer everything else to FastAPI."""
    if exc.status_code != 405:
        return await http_exception_handler(request, exc)

    context = get_request_context(request)
    logger.warning("method_not_allowed", method=request.method, path=request.url.path)
    body = ErrorResponse(message="method not allowed", request_id=context.request_id)
    return JSONResponse(
        status_code=405,
        content=body.model_dump(),
        headers=exc.headers,
    )


# Setup tracing
setup_tracing()
instrument_fastapi(app)

CORS_ALLOW_METHODS = ["POST", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "X-App-Version", "X-Platform"]


# CORS middleware - actual (non-preflight) requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
)


class PreflightMiddleware(BaseHTTPMiddleware):
    """
    Answer every OPTIONS request with an empty 200 and the CORS allow headers.

    Runs outside CORSMiddleware, which would otherwise reply "OK" or reject
    requested headers that are not on the allow list with a 400.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method != "OPTIONS":
            return await call_next(request)

        headers = {
            "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
            "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
        }
        origin = request.headers.get("Origin")
        if "*" in settings.cors_origins:
            headers["Access-Control-Allow-Origin"] = "*"
        elif origin in settings.cors_origins:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
        return Response(status_code=200, headers=headers)


app.add_middleware(PreflightMiddleware)


def _endpoint_label(path: str) -> str:
    """Route path for known routes; unknown paths share one metric label."""
    known = {getattr(route, "path", None) for route in app.routes}
    return path if path in known else "unmatched"


# Request logging middleware
@app.middleware("http")
async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Assign a request ID and log every HTTP request with timing."""
    start_time = time.time()
    context = RequestContext(request_id=generate_request_id())
    request.state.context = context

    path = request.url.path
    endpoint = _endpoint_label(path)
    method = request.method

    with log_context(request_id=context.request_id):
        logger.info("request_started", method=method, path=path)

        # Track in-progress requests
        metrics.http_requests_in_progress.labels(endpoint=endpoint, method=method).inc()

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            metrics.record_http_request(endpoint, method, response.status_code, duration)
            response.headers["X-Request-ID"] = context.request_id

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_seconds=duration,
            )

            return response
        except Exception as e:
            duration = time.time() - start_time
            metrics.record_http_request(endpoint, method, 500, duration)
            metrics.record_error(type(e).__name__, "http_request")

            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration_seconds=duration,
                exc_info=True,
            )
            raise
        finally:
            metrics.http_requests_in_progress.labels(endpoint=endpoint, method=method).dec()


# Register routes
app.include_router(router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.api_title,
        "version": settings.api_version,
        "status": "running",
    }


@app.get("/metrics")
async def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled", status_code=404)
    return PlainTextResponse(generate_latest())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "purchase_gateway.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
