# ==============================================================================
# Clickfunnel Utilities
# ==============================================================================
"""
Shared utilities for the clickfunnel pipeline.

This module exports configuration helpers for use throughout the pipeline.
"""

from clickfunnel.utils.config import (
    PipelineSettings,
    PostgresSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "PipelineSettings",
    "PostgresSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
