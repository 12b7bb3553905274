"""
Purchase Verification Service - Dedup check, validator dispatch, cache write.

Requests sharing a dedup key are serialized with a per-key asyncio.Lock, so
two concurrent submissions of the same (user, token) pair cannot both pass
the duplicate check: the second one waits and then sees the cached record.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from structlog import get_logger

from purchase_gateway.models.domain import PurchaseClaim, PurchaseRecord, ValidationResult
from purchase_gateway.observability.metrics import metrics
from purchase_gateway.services.purchase_store import PurchaseStore
from purchase_gateway.services.purchase_validator import PurchaseValidator

logger = get_logger(__name__)


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class PurchaseVerificationService:
    """
    Orchestrates purchase verification.

    Usage:
        service = PurchaseVerificationService(store, live, simulated, {"pico"})
        result = await service.verify(claim)
    """

    def __init__(
        self,
        store: PurchaseStore,
        live_validator: PurchaseValidator,
        simulated_validator: PurchaseValidator,
        live_platforms: frozenset[str] | set[str] = frozenset({"pico"}),
    ) -> None:
        self.store = store
        self.live_validator = live_validator
        self.simulated_validator = simulated_validator
        self.live_platforms = frozenset(live_platforms)
        self._key_locks: dict[str, _KeyLock] = {}

    def select_validator(self, platform: str | None) -> PurchaseValidator:
        """Live validator for live platforms, simulator for everything else."""
        if platform in self.live_platforms:
            return self.live_validator
        return self.simulated_validator

    @asynccontextmanager
    async def _serialized(self, key: str) -> AsyncIterator[None]:
        entry = self._key_locks.setdefault(key, _KeyLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._key_locks[key]

    async def verify(self, claim: PurchaseClaim) -> ValidationResult:
        """
        Verify a purchase, short-circuiting repeated submissions.

        Args:
            claim: Purchase to verify

        Returns:
            Duplicate result if the pair was already verified, otherwise the
            selected validator's result
        """
        key = claim.dedup_key

        validator = self.select_validator(claim.platform)

        async with self._serialized(key):
            if self.store.has(key):
                logger.warning(
                    "duplicate_purchase_detected",
                    user_id=claim.user_id,
                    product_id=claim.product_id,
                )
                metrics.duplicate_purchases_total.inc()
                metrics.record_validation(validator.name, "duplicate")
                return ValidationResult.duplicate(claim.product_id)

            logger.info(
                "dispatching_purchase_validation",
                validator=validator.name,
                platform=claim.platform,
                product_id=claim.product_id,
            )
            result = await validator.validate(claim)

            if result.should_record:
                self._record(key, claim)

        metrics.record_validation(validator.name, "verified" if result.success else "rejected")
        return result

    def _record(self, key: str, claim: PurchaseClaim) -> None:
        """Insert the cache entry, then evict anything past the TTL."""
        record = PurchaseRecord(
            product_id=claim.product_id,
            user_id=claim.user_id,
            timestamp=self.store.now(),
        )
        self.store.set(key, record)
        evicted = self.store.sweep()
        metrics.record_cache_state(len(self.store), evicted)
