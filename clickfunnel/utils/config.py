# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="", description="PostgreSQL password")
    database: str = Field(default="clickfunnel", description="Database name")
    schema_name: str = Field(default="clickfunnel", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class StorageSettings(BaseSettings):
    """Where events and pipeline outputs are stored."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["parquet", "postgresql"] = Field(
        default="parquet",
        description="Storage backend (parquet, postgresql)",
    )
    data_dir: Path = Field(
        default=Path("data/warehouse"),
        description="Directory for Parquet tables (parquet backend only)",
    )

    @property
    def data_dir_path(self) -> Path:
        """Resolve data directory to absolute path from project root."""
        if self.data_dir.is_absolute():
            return self.data_dir
        # Import here to avoid circular imports
        from clickfunnel.utils.paths import get_project_root

        return get_project_root() / self.data_dir


class PipelineSettings(BaseSettings):
    """Sessionization, anomaly and aggregation policy."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    max_session_minutes: int = Field(
        default=1440,
        ge=0,
        description="Sessions longer than this are quarantined as duration violations",
    )
    summary_batch_size: int = Field(
        default=500_000,
        ge=1,
        description="Sessions per persisted summary batch",
    )
    partitions: int = Field(default=1, ge=1, description="Shards for aggregation stages")
    workers: int = Field(default=1, ge=1, description="Threads for aggregation stages")
    placeholder_session_id: str = Field(
        default="unknown",
        description="Session id substituted for missing values at load time",
    )
    placeholder_brand: str = Field(
        default="No Brand",
        description="Brand substituted for missing values at load time",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
