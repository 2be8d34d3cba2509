"""
Application Configuration - Pydantic Settings for type-safe config.

FAIL FAST - Critical config is validated at startup.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration - NO DEFAULT for production safety
    database_url: str = ""
    database_pool_size: int = 10
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    run_migrations_on_startup: bool = False

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "ToolFlix API"
    api_version: str = "1.0.0"
    api_description: str = "Accounts, premium tokens and support chat for ToolFlix"

    # Security
    jwt_secret: str = ""
    user_jwt_expire_days: int = 30
    admin_key: str = ""  # X-Admin-Key for operators; empty disables key auth
    master_nick: str = "Srgokucheats"  # JWT holder with this nick is treated as admin

    # Premium tokens
    token_default_validity_days: int = 30

    # Support chat
    chat_ttl_days: int = 7
    chat_rate_limit_ms: int = 30_000
    chat_max_message_length: int = 500
    chat_message_list_cap: int = 300

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "toolflix-api"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The app MUST NOT start if critical config is missing.
        """
        errors: list[str] = []

        if not self.database_url:
            errors.append("DATABASE_URL is required but empty or missing")
        elif not self.database_url.startswith(("postgresql", "postgres")):
            errors.append(
                f"DATABASE_URL must be a PostgreSQL URL, got: {self.database_url[:20]}..."
            )

        # Tokens signed with a short secret are trivially forgeable
        if len(self.jwt_secret) < 16:
            errors.append("JWT_SECRET is required and must be at least 16 characters")

        if self.chat_ttl_days <= 0:
            errors.append("CHAT_TTL_DAYS must be positive")
        if self.chat_rate_limit_ms < 0:
            errors.append("CHAT_RATE_LIMIT_MS cannot be negative")

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

    @property
    def chat_ttl_ms(self) -> int:
        """Chat time-to-live in milliseconds."""
        return self.chat_ttl_days * 86_400_000


# Global settings instance - validates at import time
settings = Settings()
