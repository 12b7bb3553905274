"""
Simulated Purchase Validator.

Stands in for a real payment platform on non-live platforms (editor,
desktop builds, QA). Approves tokens by prefix only.
"""

import asyncio
import time

from structlog import get_logger

from purchase_gateway.models.domain import PurchaseClaim, ValidationResult
from purchase_gateway.observability.metrics import metrics

logger = get_logger(__name__)

SIMULATED_TOKEN_PREFIXES = ("simulated_purchase_token_", "test_")


def is_simulated_token(purchase_token: str) -> bool:
    """Check if a token carries one of the test prefixes."""
    return purchase_token.startswith(SIMULATED_TOKEN_PREFIXES)


class SimulatedPurchaseValidator:
    """Validator that emulates network latency and approves test tokens."""

    name = "simulated"

    def __init__(self, delay_seconds: float = 0.3) -> None:
        self.delay_seconds = delay_seconds

    async def validate(self, claim: PurchaseClaim) -> ValidationResult:
        start = time.perf_counter()
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        metrics.record_verification(self.name, time.perf_counter() - start)

        if is_simulated_token(claim.purchase_token):
            return ValidationResult.approved(claim.product_id, "simulated purchase verified")

        logger.info("simulated_purchase_rejected", product_id=claim.product_id)
        return ValidationResult.rejected(
            claim.product_id, "simulated verification failed: invalid token"
        )
