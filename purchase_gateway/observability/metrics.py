"""
Metrics Collection with Prometheus.

Exposes purchase validation and HTTP metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from purchase_gateway.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    VALIDATOR = "validator"
    OUTCOME = "outcome"
    ERROR_TYPE = "error_type"


class GatewayMetrics:
    """
    Centralized metrics for the Purchase Gateway API.

    Covers:
    - HTTP requests (rate, duration, in progress)
    - Purchase validations (rate by validator and outcome)
    - Outbound verification calls (duration by validator)
    - Dedup cache (size, duplicates, evictions)
    - Errors by type
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "purchase_gateway_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "purchase_gateway_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "purchase_gateway_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "purchase_gateway_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        # ====================================================================
        # Validation Metrics
        # ====================================================================
        self.purchase_validations_total = Counter(
            "purchase_gateway_validations_total",
            "Total purchase validations by validator and outcome",
            [MetricLabels.VALIDATOR, MetricLabels.OUTCOME],
        )

        self.verification_duration_seconds = Histogram(
            "purchase_gateway_verification_duration_seconds",
            "Validator call duration in seconds",
            [MetricLabels.VALIDATOR],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 10.0),
        )

        # ====================================================================
        # Dedup Cache Metrics
        # ====================================================================
        self.duplicate_purchases_total = Counter(
            "purchase_gateway_duplicate_purchases_total",
            "Total requests short-circuited as duplicates",
        )

        self.cached_purchases = Gauge(
            "purchase_gateway_cached_purchases",
            "Number of purchases currently held in the dedup cache",
        )

        self.cache_evictions_total = Counter(
            "purchase_gateway_cache_evictions_total",
            "Total dedup cache entries evicted by age",
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "purchase_gateway_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_validation(self, validator: str, outcome: str) -> None:
        """Record a completed purchase validation."""
        self.purchase_validations_total.labels(validator=validator, outcome=outcome).inc()

    def record_verification(self, validator: str, duration: float) -> None:
        """Record validator call duration."""
        self.verification_duration_seconds.labels(validator=validator).observe(duration)

    def record_cache_state(self, size: int, evicted: int) -> None:
        """Record dedup cache size after a sweep."""
        self.cached_purchases.set(size)
        if evicted:
            self.cache_evictions_total.inc(evicted)

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = GatewayMetrics()
