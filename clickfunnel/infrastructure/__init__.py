# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external storage (ports-and-adapters architecture).

This module contains concrete implementations of the base/ interfaces:
- repositories/ - Storage adapters (Parquet, PostgreSQL)
- loader.py - CSV export reader and cleaning
- factory.py - Adapter selection from configuration
"""

from clickfunnel.infrastructure.factory import (
    get_event_store,
    get_output_repository,
    get_watermark_store,
)
from clickfunnel.infrastructure.loader import (
    FileLoadSummary,
    LoadResult,
    load_files,
    read_events_csv,
)

__all__ = [
    "FileLoadSummary",
    "LoadResult",
    "get_event_store",
    "get_output_repository",
    "get_watermark_store",
    "load_files",
    "read_events_csv",
]
