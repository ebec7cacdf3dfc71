"""Configuration management using pydantic-settings."""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LOTPARSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Auction cost defaults (used when the auction sheet has no value)
    default_buyers_premium_percent: Decimal = Field(
        default=Decimal("20"),
        ge=0,
        le=100,
        description="Buyer's premium percentage applied when the auction sheet has none",
    )
    default_sales_tax_percent: Decimal = Field(
        default=Decimal("8"),
        ge=0,
        le=100,
        description="Sales tax percentage applied when the auction sheet has none",
    )

    # Job processing
    worker_pool_size: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Number of jobs processed concurrently",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Retries allowed after the first failure; the next failure makes a job dead",
    )

    # Classification
    classifier_rules_file: Path | None = Field(
        default=None,
        description="JSON file overriding the built-in category/condition keyword lists",
    )

    # File Processing
    max_file_size_mb: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum file size in MB",
    )
    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Directory to store uploaded documents",
    )

    # State
    job_store_path: Path | None = Field(
        default=None,
        description="JSON file persisting import jobs (in-memory when unset)",
    )
    seed_state_path: Path = Field(
        default=Path(".seed_state.json"),
        description="JSON file tracking already processed documents",
    )

    log_level: str = Field(default="INFO")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        """Accept lower-case level names (debug, info, warn, error)."""
        level = str(value).strip().upper()
        if level == "WARN":
            return "WARNING"
        return level

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
