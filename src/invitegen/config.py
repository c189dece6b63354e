"""Centralized application configuration via environment variables."""

from enum import StrEnum
from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    ``site_password`` uses SecretStr to prevent accidental logging.
    Leaving it unset disables the site-wide password gate.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"
    host: str = "127.0.0.1"
    port: int = 8000

    # --- CORS ---
    cors_allowed_origins: list[str] = []
    cors_allow_credentials: bool = False
    cors_allowed_methods: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE"]
    cors_allowed_headers: list[str] = ["Content-Type", "X-CSRF-Token"]

    # --- Site access gate ---
    site_password: SecretStr | None = None

    # --- Admission control ---
    rate_limit_enabled: bool = True
    csrf_enabled: bool = True
    # Housekeeping tick for expired rate-limit records.
    rate_limit_cleanup_interval_seconds: int = 60

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def site_gate_enabled(self) -> bool:
        return (
            self.site_password is not None
            and self.site_password.get_secret_value() != ""
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from invitegen.config import get_settings
        settings = get_settings()
    """
    return Settings()


settings = get_settings()
