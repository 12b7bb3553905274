"""
PICO domain models - Immutable dataclasses for purchase verification.

NO DICTIONARIES - All data uses strongly typed models.

The PICO server API answers purchase checks with {"ret": int, "msg": str};
ret == 0 means the purchase is valid.
"""

from dataclasses import dataclass

PICO_RET_OK = 0


@dataclass(frozen=True)
class PicoConfig:
    """Configuration for the PICO purchase verification API."""

    app_id: str
    app_secret: str
    validation_url: str
    timeout_seconds: float = 8.0
    user_agent: str = "PICO-Payment-Server/1.0"

    def __post_init__(self) -> None:
        """Validate configuration fields."""
        if not self.app_id:
            raise ValueError("PICO app_id is required")
        if not self.app_secret:
            raise ValueError("PICO app_secret is required")
        if not self.validation_url.startswith(("http://", "https://")):
            raise ValueError("PICO validation_url must be an http(s) URL")
        if self.timeout_seconds <= 0:
            raise ValueError("PICO timeout_seconds must be positive")


@dataclass(frozen=True)
class PicoVerificationResponse:
    """Parsed body of a PICO purchase check response."""

    ret: object  # int per protocol, but the body is untrusted
    msg: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "PicoVerificationResponse":
        msg = payload.get("msg")
        return cls(ret=payload.get("ret"), msg=str(msg) if msg else None)

    def is_ok(self) -> bool:
        """Check if PICO confirmed the purchase."""
        ret = self.ret
        return isinstance(ret, (int, float)) and not isinstance(ret, bool) and ret == PICO_RET_OK

    def failure_reason(self) -> str:
        """Remote message, or the return code when no message was sent."""
        if self.msg:
            return self.msg
        code = "unknown" if self.ret is None else self.ret
        return f"error code: {code}"
