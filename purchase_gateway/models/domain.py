"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """ISO 8601 with millisecond precision and a Z suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class PurchaseClaim:
    """A purchase the client asks us to verify."""

    product_id: str
    purchase_token: str
    user_id: str
    platform: str | None = None

    def __post_init__(self) -> None:
        """Validate purchase claim fields."""
        if not self.product_id:
            raise ValueError("product_id cannot be empty")
        if not self.purchase_token:
            raise ValueError("purchase_token cannot be empty")
        if not self.user_id:
            raise ValueError("user_id cannot be empty")

    @property
    def dedup_key(self) -> str:
        """Composite key identifying repeated submissions of one purchase."""
        return f"{self.user_id}_{self.purchase_token}"


@dataclass(frozen=True)
class PurchaseRecord:
    """Dedup cache entry for a successfully verified purchase."""

    product_id: str
    user_id: str
    timestamp: float  # Creation time, epoch seconds

    def age_seconds(self, now: float) -> float:
        return now - self.timestamp


@dataclass(frozen=True)
class ValidationResult:
    """Normalized outcome of a purchase verification."""

    success: bool
    message: str
    validated_product_id: str
    is_duplicate: bool = False
    server_time: datetime = field(default_factory=utc_now)

    @classmethod
    def approved(cls, product_id: str, message: str) -> "ValidationResult":
        return cls(success=True, message=message, validated_product_id=product_id)

    @classmethod
    def rejected(cls, product_id: str, message: str) -> "ValidationResult":
        return cls(success=False, message=message, validated_product_id=product_id)

    @classmethod
    def duplicate(cls, product_id: str) -> "ValidationResult":
        return cls(
            success=True,
            message="duplicate order (already processed)",
            validated_product_id=product_id,
            is_duplicate=True,
        )

    @property
    def should_record(self) -> bool:
        """Only first-time successes enter the dedup cache."""
        return self.success and not self.is_duplicate
