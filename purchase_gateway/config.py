"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Insecure credentials are rejected in production at startup.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Fallback credentials - only acceptable outside production
DEFAULT_PICO_APP_ID = "your_pico_app_id"
DEFAULT_PICO_APP_SECRET = "your_pico_app_secret"


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Deployment environment: development, staging, production
    environment: str = "development"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "Purchase Gateway API"
    api_version: str = "1.0.0"
    api_description: str = "In-app purchase receipt validation for VR apps"

    # PICO Payment API
    pico_app_id: str = DEFAULT_PICO_APP_ID
    pico_app_secret: str = DEFAULT_PICO_APP_SECRET
    pico_validation_url: str = "https://open-api.pico.cn/platform/serverapi/purchase/check"
    pico_timeout_seconds: float = 8.0
    pico_user_agent: str = "PICO-Payment-Server/1.0"

    # Platforms routed to the live validator (comma-separated)
    live_platforms: str = "pico"

    # Simulated validator
    simulated_delay_seconds: float = 0.3

    # Dedup cache
    dedup_ttl_seconds: int = 86400  # 24 hours

    # CORS (comma-separated origins)
    cors_allow_origins: str = "*"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "purchase-gateway"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def live_platform_ids(self) -> frozenset[str]:
        """Platforms that are verified against the real payment API."""
        return frozenset(p.strip() for p in self.live_platforms.split(",") if p.strip())

    @property
    def cors_origins(self) -> list[str]:
        """Get list of allowed CORS origins."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def uses_default_credentials(self) -> bool:
        """True when either PICO credential is still the insecure fallback."""
        return (
            self.pico_app_id == DEFAULT_PICO_APP_ID
            or self.pico_app_secret == DEFAULT_PICO_APP_SECRET
        )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        Production deployments must never run on the fallback credentials.
        """
        errors: list[str] = []

        if not self.pico_app_id or not self.pico_app_secret:
            errors.append("PICO_APP_ID and PICO_APP_SECRET must not be empty")
        elif self.is_production and self.uses_default_credentials:
            errors.append(
                "PICO_APP_ID and PICO_APP_SECRET must be set in production "
                "(fallback defaults are insecure)"
            )

        if self.pico_timeout_seconds <= 0:
            errors.append(f"PICO_TIMEOUT_SECONDS must be positive, got {self.pico_timeout_seconds}")

        if self.dedup_ttl_seconds <= 0:
            errors.append(f"DEDUP_TTL_SECONDS must be positive, got {self.dedup_ttl_seconds}")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - APPLICATION CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self


# Global settings instance - validates at import time
settings = Settings()
