"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) - single instance per process

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box against
      a local database and auth server
    - dev_user_id mirrors the mock user seeded for development; it is the caller
      identity whenever no X-User-Id header is sent
"""

from functools import lru_cache
from uuid import UUID

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://santa:santa@db:5432/santa"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Identity provider (auth admin API)
    identity_url: str = "http://localhost:54321/auth/v1"
    identity_service_key: str = "service-role-placeholder"
    identity_timeout_seconds: float = 30.0
    identity_max_retries: int = 3
    identity_base_delay_ms: int = 500
    identity_max_delay_ms: int = 10_000
    identity_page_size: int = 1000
    invite_redirect_url: str = "http://localhost:4321/set-password"

    # Caller identity
    dev_user_id: UUID = UUID("00000000-0000-0000-0000-000000000000")

    # API
    cors_origins: list[str] = ["http://localhost:4321"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
