# ==============================================================================
# Session Pipeline - Stage Composition
# ==============================================================================
"""
Chains the core stages over an in-memory event set:

    events -> Sessionizer -> AnomalyClassifier -> FunnelAggregator
    events -> split_price_anomalies -> PriceVariationAnalyzer

Every stage returns new collections, so each stage's input and output can be
inspected on the PipelineResult. Persistence and watermarks are handled by
PipelineRunner; this module does no I/O.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from clickfunnel.core.anomaly_classifier import (
    DEFAULT_MAX_SESSION_MINUTES,
    DEFAULT_PLACEHOLDER_SESSION_IDS,
    AnomalyClassifier,
    ClassificationResult,
)
from clickfunnel.core.funnel_aggregator import DEFAULT_BATCH_SIZE, FunnelAggregator
from clickfunnel.core.models import Event, PriceVariation, SessionSummary
from clickfunnel.core.price_variation import (
    PriceVariationAnalyzer,
    collect_observations,
    split_price_anomalies,
)
from clickfunnel.core.sessionizer import SessionizeResult, Sessionizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Outputs of every stage of one pipeline pass."""

    sessionized: SessionizeResult
    classification: ClassificationResult
    summaries: dict[str, SessionSummary] = field(default_factory=dict)
    price_variations: tuple[PriceVariation, ...] = ()
    price_anomalies: tuple[Event, ...] = ()


class SessionPipeline:
    """
    Runs sessionization, anomaly classification, funnel and price stages.

    Args:
        max_session_minutes: Pass B threshold
        placeholder_session_ids: Session ids routed to Pass A
        batch_size: Funnel aggregator batch size
        partitions: Shard count for the aggregation stages
        workers: Threads for the aggregation stages
    """

    def __init__(
        self,
        max_session_minutes: int = DEFAULT_MAX_SESSION_MINUTES,
        placeholder_session_ids: Iterable[str] = DEFAULT_PLACEHOLDER_SESSION_IDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        partitions: int = 1,
        workers: int = 1,
    ):
        self.sessionizer = Sessionizer()
        self.classifier = AnomalyClassifier(max_session_minutes, placeholder_session_ids)
        self.aggregator = FunnelAggregator(batch_size, partitions, workers)
        self.price_analyzer = PriceVariationAnalyzer(partitions, workers)

    def run(self, events: Sequence[Event], summarize: bool = True) -> PipelineResult:
        """
        Run every stage over the event set.

        Args:
            events: The deduplicated event store contents
            summarize: Compute session summaries in memory. PipelineRunner
                passes False and persists summaries in watermarked batches.

        Returns:
            PipelineResult

        Raises:
            ComputationError: If a product reaches the price analyzer with a
                non-positive minimum price
        """
        sessionized = self.sessionizer.sessionize(events)
        classification = self.classifier.classify(sessionized.sessions, events)

        summaries: dict[str, SessionSummary] = {}
        if summarize:
            summaries = self.aggregator.aggregate(
                classification.clean_events, classification.clean_session_ids
            )

        priced, price_anomalies = split_price_anomalies(events)
        variations = self.price_analyzer.analyze(collect_observations(priced))

        return PipelineResult(
            sessionized=sessionized,
            classification=classification,
            summaries=summaries,
            price_variations=tuple(variations),
            price_anomalies=tuple(price_anomalies),
        )
