"""
API Models - Pydantic models for request/response validation.

NO DICTIONARIES - All data structures are strongly typed.

Required fields on PurchaseRequest are declared optional on purpose: a
missing field is reported in the response body (HTTP 200), not as a 422.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

REQUIRED_PURCHASE_FIELDS = ("product_id", "purchase_token", "user_id")


# ============================================================================
# Purchase Validation Models
# ============================================================================


class PurchaseRequest(BaseModel):
    """POST /api/validate-purchase request body."""

    model_config = ConfigDict(extra="ignore")

    product_id: str | None = None
    purchase_token: str | None = None
    user_id: str | None = None
    platform: str | None = "native"

    # Informational client metadata (logged, never validated)
    app_version: str | None = None
    device_id: str | None = None

    @field_validator("platform", "app_version", "device_id", mode="before")
    @classmethod
    def stringify_metadata(cls, v: Any) -> str | None:
        """Accept any JSON scalar for routing/metadata fields."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    def missing_fields(self) -> list[str]:
        """Names of required fields that are absent, null or empty."""
        return [name for name in REQUIRED_PURCHASE_FIELDS if not getattr(self, name)]


class PurchaseValidationResponse(BaseModel):
    """POST /api/validate-purchase response."""

    success: bool
    message: str
    request_id: str
    validated_product_id: str | None = None
    is_duplicate: bool | None = None
    server_time: str | None = Field(None, description="ISO 8601 timestamp")
    processing_time: int | None = Field(None, description="Milliseconds")


class ErrorResponse(BaseModel):
    """Error body for HTTP-level failures (405)."""

    success: bool = False
    message: str
    request_id: str


# ============================================================================
# Service Models
# ============================================================================


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str
    version: str
    environment: str
    cached_purchases: int
    timestamp: str
