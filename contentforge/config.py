"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box locally
    - storage_url unset selects the local directory blob store (dev fallback)
"""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://contentforge:contentforge@db:5432/contentforge"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Renderer (external)
    renderer_url: str | None = None
    renderer_timeout_seconds: int = 60
    renderer_max_retries: int = 2
    renderer_base_delay_ms: int = 500
    renderer_max_delay_ms: int = 10_000

    # Blob storage (external)
    storage_url: str | None = None
    storage_service_key: str = "storage-placeholder"
    storage_bucket: str = "content-generator"
    storage_timeout_seconds: int = 30
    local_storage_dir: Path = Path("uploads")
    public_base_url: str = "http://localhost:8000"

    # Quota defaults per subscription tier
    free_exports_limit: int = 5
    pro_exports_limit: int = 100
    agency_exports_limit: int = 1000

    # Paging
    default_page_size: int = 20
    max_page_size: int = 100

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def exports_limit_for(self, tier: str) -> int:
        """Default monthly export limit for a subscription tier token."""
        return {
            "free": self.free_exports_limit,
            "pro": self.pro_exports_limit,
            "agency": self.agency_exports_limit,
        }.get(getattr(tier, "value", tier), self.free_exports_limit)


@lru_cache
def get_settings() -> Settings:
    return Settings()
