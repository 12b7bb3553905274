"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""


class PurchaseGatewayError(Exception):
    """Base exception for all purchase gateway errors."""

    pass


class VerificationError(PurchaseGatewayError):
    """Raised when the remote purchase verification call fails."""

    pass


class VerificationTimeoutError(VerificationError):
    """Raised when the verification service does not answer in time."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Verification request timed out after {timeout_seconds}s")


class VerificationServerError(VerificationError):
    """Raised when the verification service answers with a non-success status."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Verification server error: {status_code}")


class VerificationUnavailableError(VerificationError):
    """Raised on transport faults other than timeouts (DNS, refused, reset)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Verification service unavailable: {message}")


class MalformedRequestError(PurchaseGatewayError):
    """Raised when a request body cannot be read as a JSON object."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
