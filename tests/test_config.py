# ==============================================================================
# Tests for Configuration
# ==============================================================================
"""
Tests for settings defaults, environment overrides and validation.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from clickfunnel.utils.config import PipelineSettings, PostgresSettings, StorageSettings


class TestPipelineSettings:
    """Tests for PIPELINE_* settings."""

    def test_defaults(self):
        settings = PipelineSettings()
        assert settings.max_session_minutes == 1440
        assert settings.summary_batch_size == 500_000
        assert settings.partitions == 1
        assert settings.workers == 1
        assert settings.placeholder_session_id == "unknown"
        assert settings.placeholder_brand == "No Brand"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PIPELINE_MAX_SESSION_MINUTES", "60")
        monkeypatch.setenv("PIPELINE_PARTITIONS", "8")
        settings = PipelineSettings()
        assert settings.max_session_minutes == 60
        assert settings.partitions == 8

    def test_negative_threshold_rejected(self, monkeypatch):
        monkeypatch.setenv("PIPELINE_MAX_SESSION_MINUTES", "-5")
        with pytest.raises(ValidationError):
            PipelineSettings()

    def test_zero_batch_size_rejected(self):
        with pytest.raises(ValidationError):
            PipelineSettings(summary_batch_size=0)


class TestStorageSettings:
    """Tests for STORAGE_* settings."""

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "mysql")
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_absolute_data_dir_kept(self, tmp_path):
        assert StorageSettings(data_dir=tmp_path).data_dir_path == tmp_path

    def test_relative_data_dir_resolved(self):
        path = StorageSettings(data_dir=Path("data/warehouse")).data_dir_path
        assert path.is_absolute()
        assert path.parts[-2:] == ("data", "warehouse")


class TestPostgresSettings:
    """Tests for PG_* settings."""

    def test_connection_string(self):
        settings = PostgresSettings(
            host="db", port=5433, user="u", password="p", database="d", sslmode="require"
        )
        assert settings.connection_string == "postgresql://u:p@db:5433/d?sslmode=require"
