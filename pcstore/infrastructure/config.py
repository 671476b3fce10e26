"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    data_path: Path = Path("Data") / "datastore.json"

    # Category resolution
    default_category_id: int = 1

    # Queries
    low_stock_threshold: int = 10
    featured_limit: int = 12

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PCSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
