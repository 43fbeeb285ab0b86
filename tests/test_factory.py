# ==============================================================================
# Tests for Storage Factory
# ==============================================================================
"""
Tests that the configured backend selects the matching adapters.
"""

import pytest

from clickfunnel.infrastructure.factory import (
    get_event_store,
    get_output_repository,
    get_watermark_store,
)
from clickfunnel.infrastructure.repositories.parquet import (
    JsonWatermarkStore,
    ParquetEventStore,
    ParquetOutputRepository,
)
from clickfunnel.infrastructure.repositories.postgresql import (
    PostgreSQLEventStore,
    PostgreSQLOutputRepository,
    PostgreSQLWatermarkStore,
)
from clickfunnel.utils.config import Settings, StorageSettings


def _settings(backend, tmp_path):
    return Settings(storage=StorageSettings(backend=backend, data_dir=tmp_path))


class TestFactory:
    """Tests for adapter selection."""

    def test_parquet_backend(self, tmp_path):
        settings = _settings("parquet", tmp_path)
        assert isinstance(get_event_store(settings), ParquetEventStore)
        assert isinstance(get_output_repository(settings), ParquetOutputRepository)
        assert isinstance(get_watermark_store(settings), JsonWatermarkStore)

    def test_postgresql_backend(self, tmp_path):
        settings = _settings("postgresql", tmp_path)
        assert isinstance(get_event_store(settings), PostgreSQLEventStore)
        assert isinstance(get_output_repository(settings), PostgreSQLOutputRepository)
        assert isinstance(get_watermark_store(settings), PostgreSQLWatermarkStore)

    def test_unknown_backend(self, tmp_path):
        settings = _settings("parquet", tmp_path)
        settings.storage.backend = "mysql"
        with pytest.raises(ValueError, match="Unknown storage backend"):
            get_event_store(settings)
