# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no I/O.

This module contains:
- Domain models (Event, Session, SessionSummary, PriceVariation, ...)
- Sessionizer, AnomalyClassifier, FunnelAggregator, PriceVariationAnalyzer
- SessionPipeline composing the stages

All code here is storage-agnostic and easily unit-testable.
"""

from clickfunnel.core.anomaly_classifier import AnomalyClassifier, ClassificationResult
from clickfunnel.core.exceptions import ClickfunnelError, ComputationError
from clickfunnel.core.funnel_aggregator import FunnelAggregator
from clickfunnel.core.models import (
    AnomalousSession,
    AnomalyReason,
    DataQualityReport,
    Event,
    EventType,
    PriceObservation,
    PriceVariation,
    Session,
    SessionSummary,
)
from clickfunnel.core.pipeline import PipelineResult, SessionPipeline
from clickfunnel.core.price_variation import PriceVariationAnalyzer
from clickfunnel.core.sessionizer import Sessionizer

__all__ = [
    "AnomalousSession",
    "AnomalyClassifier",
    "AnomalyReason",
    "ClassificationResult",
    "ClickfunnelError",
    "ComputationError",
    "DataQualityReport",
    "Event",
    "EventType",
    "FunnelAggregator",
    "PipelineResult",
    "PriceObservation",
    "PriceVariation",
    "PriceVariationAnalyzer",
    "Session",
    "SessionPipeline",
    "SessionSummary",
    "Sessionizer",
]
