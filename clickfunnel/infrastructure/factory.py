# ==============================================================================
# Storage Factory
# ==============================================================================
"""
Factory functions for creating storage adapters.

Uses the STORAGE_BACKEND environment variable (via config) to determine
which implementation to use.
"""

from clickfunnel.base.repositories import EventStore, OutputRepository, WatermarkStore
from clickfunnel.utils.config import Settings, get_settings

WATERMARK_FILE = "watermarks.json"


def _invalid_backend(backend: str) -> ValueError:
    return ValueError(
        f"Unknown storage backend: '{backend}'.\nValid options are: parquet, postgresql"
    )


def get_event_store(settings: Settings | None = None) -> EventStore:
    """
    Get an event store for the configured backend.

    Raises:
        ValueError: If unknown backend is configured
    """
    settings = settings or get_settings()
    backend = settings.storage.backend

    match backend:
        case "parquet":
            from clickfunnel.infrastructure.repositories.parquet import ParquetEventStore

            return ParquetEventStore(settings.storage.data_dir_path)
        case "postgresql":
            from clickfunnel.infrastructure.repositories.postgresql import PostgreSQLEventStore

            return PostgreSQLEventStore(settings)
        case _:
            raise _invalid_backend(backend)


def get_output_repository(settings: Settings | None = None) -> OutputRepository:
    """
    Get an output repository for the configured backend.

    Raises:
        ValueError: If unknown backend is configured
    """
    settings = settings or get_settings()
    backend = settings.storage.backend

    match backend:
        case "parquet":
            from clickfunnel.infrastructure.repositories.parquet import ParquetOutputRepository

            return ParquetOutputRepository(settings.storage.data_dir_path)
        case "postgresql":
            from clickfunnel.infrastructure.repositories.postgresql import (
                PostgreSQLOutputRepository,
            )

            return PostgreSQLOutputRepository(settings)
        case _:
            raise _invalid_backend(backend)


def get_watermark_store(settings: Settings | None = None) -> WatermarkStore:
    """
    Get a watermark store for the configured backend.

    Raises:
        ValueError: If unknown backend is configured
    """
    settings = settings or get_settings()
    backend = settings.storage.backend

    match backend:
        case "parquet":
            from clickfunnel.infrastructure.repositories.parquet import JsonWatermarkStore

            return JsonWatermarkStore(settings.storage.data_dir_path / WATERMARK_FILE)
        case "postgresql":
            from clickfunnel.infrastructure.repositories.postgresql import (
                PostgreSQLWatermarkStore,
            )

            return PostgreSQLWatermarkStore(settings)
        case _:
            raise _invalid_backend(backend)
