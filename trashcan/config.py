# trashcan/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Fail fast with clear error messages if a value is malformed.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from trashcan.constants import CleanerDefaults, StoreRefs
from trashcan.services.retention_policy import parse_keep_period


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./trashcan.db",
        description="SQLAlchemy URL of the node store database",
    )

    # Authentication
    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key for admin endpoints (admin endpoints fail closed when unset)",
    )

    # Node store
    TRASHCAN_STORE_PROVIDER: str = Field(
        default="sql",
        description="Node store provider: sql, memory",
    )
    TRASHCAN_ARCHIVE_STORE: str = Field(
        default=StoreRefs.ARCHIVE,
        description="Store reference of the archive store to clean",
    )

    # Cleaner
    TRASHCAN_MAX_ITEMS_PER_CYCLE: int = Field(
        default=CleanerDefaults.MAX_ITEMS_PER_CYCLE,
        ge=1,
        description="Maximum nodes deleted per clean() call",
    )
    TRASHCAN_KEEP_PERIOD: str = Field(
        default=CleanerDefaults.KEEP_PERIOD,
        description="ISO-8601 duration nodes stay in the trashcan (e.g. P30D). Non-positive deletes everything.",
    )
    TRASHCAN_SUB_BATCH_SIZE: int = Field(
        default=CleanerDefaults.SUB_BATCH_SIZE,
        ge=1,
        description="Nodes deleted per transaction",
    )
    TRASHCAN_MAX_RETRIES: int = Field(
        default=CleanerDefaults.MAX_RETRIES,
        ge=1,
        description="Attempts per transaction when the store reports a conflict",
    )
    TRASHCAN_RETRY_MIN_WAIT: float = Field(
        default=CleanerDefaults.RETRY_MIN_WAIT_SECONDS,
        ge=0,
        description="Initial retry backoff in seconds",
    )
    TRASHCAN_RETRY_MAX_WAIT: float = Field(
        default=CleanerDefaults.RETRY_MAX_WAIT_SECONDS,
        ge=0,
        description="Maximum retry backoff in seconds",
    )
    TRASHCAN_SELECTION_MODE: str = Field(
        default="full",
        description="Selection mode: full (list everything, stop at cap) or bounded (list at most cap)",
    )
    TRASHCAN_TRAVERSAL_ORDER: str = Field(
        default="oldest_first",
        description="Full-listing walk order: oldest_first or newest_first",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")
    LOG_JSON: bool = Field(default=True, description="Emit single-line JSON logs")

    @field_validator("TRASHCAN_KEEP_PERIOD")
    @classmethod
    def validate_keep_period(cls, v: str) -> str:
        """Reject unparsable durations at startup rather than at cycle time."""
        parse_keep_period(v)
        return v

    @field_validator("TRASHCAN_STORE_PROVIDER", "TRASHCAN_SELECTION_MODE", "TRASHCAN_TRAVERSAL_ORDER", "LOG_LEVEL")
    @classmethod
    def normalize_choice(cls, v: str) -> str:
        return v.strip().lower() if v else v

    @field_validator("TRASHCAN_STORE_PROVIDER")
    @classmethod
    def validate_store_provider(cls, v: str) -> str:
        if v not in ("sql", "memory"):
            raise ValueError(f"Unknown store provider: {v}. Available: sql, memory")
        return v

    @field_validator("TRASHCAN_SELECTION_MODE")
    @classmethod
    def validate_selection_mode(cls, v: str) -> str:
        if v not in ("full", "bounded"):
            raise ValueError(f"Unknown selection mode: {v}. Available: full, bounded")
        return v

    @field_validator("TRASHCAN_TRAVERSAL_ORDER")
    @classmethod
    def validate_traversal_order(cls, v: str) -> str:
        if v not in ("oldest_first", "newest_first"):
            raise ValueError(f"Unknown traversal order: {v}. Available: oldest_first, newest_first")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
