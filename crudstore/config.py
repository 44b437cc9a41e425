"""Process Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting can come from a CRUDSTORE_-prefixed environment variable
      or a .env file
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - Per-service options (id field, timestamps, schema) live in
      core/service_options.py; only process-wide defaults live here
    - Defaults work out of the box: a local SQLite file through aiosqlite
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CRUDSTORE_", env_file=".env", case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///crudstore.db"
    database_echo: bool = False

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_async_driver_url(cls, v: str) -> str:
        """Plain sqlite:// and postgresql:// URLs need their async drivers."""
        if isinstance(v, str) and v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Pagination defaults for services built by crudstore.main
    paginate_default: int | None = Field(None, ge=0)
    paginate_max: int | None = Field(None, ge=0)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
