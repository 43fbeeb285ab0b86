# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the contracts between the pipeline and its
storage adapters.
"""

from clickfunnel.base.repositories import EventStore, OutputRepository, WatermarkStore
from clickfunnel.base.runner import BaseRunner

__all__ = [
    "BaseRunner",
    "EventStore",
    "OutputRepository",
    "WatermarkStore",
]
