"""
Purchase Validator Protocol - Platform-agnostic verification interface.

NO DICTIONARIES - All data uses strongly typed models.
"""

from typing import Protocol

from purchase_gateway.models.domain import PurchaseClaim, ValidationResult


class PurchaseValidator(Protocol):
    """
    Purchase validator protocol.

    Any verification backend (live platform API, simulator, etc.) must
    implement this interface. Validators report every expected failure
    (rejected token, remote error, timeout) as an unsuccessful
    ValidationResult instead of raising.
    """

    name: str

    async def validate(self, claim: PurchaseClaim) -> ValidationResult:
        """
        Verify a purchase claim.

        Args:
            claim: Purchase to verify

        Returns:
            Normalized validation result (is_duplicate is always False)
        """
        ...
