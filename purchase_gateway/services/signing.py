"""
Request Signing - Signature for outbound PICO verification requests.

The canonical string is fixed: keys sorted by name, the "sign" field
excluded, pairs joined as key=value with "&". The keyed digest applied to it
is NOT known yet and must come from PICO's server API documentation; until
then PlaceholderSigner is the only strategy and its output will not be
accepted by the live service.
"""

import time
from collections.abc import Mapping
from typing import Protocol

from structlog import get_logger

logger = get_logger(__name__)

SIGNATURE_FIELD = "sign"


def canonical_string(fields: Mapping[str, object]) -> str:
    """
    Build the canonical string that a signature is computed over.

    Example:
        canonical_string({"b": "2", "a": "1", "sign": "x"}) == "a=1&b=2"
    """
    return "&".join(
        f"{key}={fields[key]}" for key in sorted(fields) if key != SIGNATURE_FIELD
    )


class RequestSigner(Protocol):
    """Signing strategy protocol for outbound verification requests."""

    def sign(self, fields: Mapping[str, object]) -> str:
        """Return the signature for the given request fields."""
        ...


class PlaceholderSigner:
    """
    Non-cryptographic stand-in for the PICO signing algorithm.

    Computes the canonical string (so callers exercise the real
    canonicalization) but returns a timestamped dummy value.
    """

    def __init__(self, app_secret: str) -> None:
        # Held for the keyed implementation that replaces this class
        self._app_secret = app_secret

    def sign(self, fields: Mapping[str, object]) -> str:
        payload = canonical_string(fields)
        logger.warning(
            "signature_algorithm_not_implemented",
            canonical_length=len(payload),
            hint="implement the PICO signing algorithm before production use",
        )
        return f"demo_signature_{int(time.time() * 1000)}"
