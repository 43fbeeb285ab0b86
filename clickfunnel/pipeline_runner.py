# ==============================================================================
# Pipeline Runner
# ==============================================================================
"""
Runs one batch pass of the pipeline against the configured storage.

Steps:
    1. Load the deduplicated events from the event store
    2. Sessionize, classify anomalies and compute price variations in memory
    3. Replace the full-refresh tables (sessions, quarantine, price tables)
    4. Drop stored summaries of sessions that are no longer clean
    5. Insert session summaries in watermarked batches

All computation happens before anything is written, so a ComputationError
leaves stored outputs untouched. SIGINT/SIGTERM stop the summary step after
the current batch; the next run resumes from the watermark.
"""

import logging

from pydantic import BaseModel, Field

from clickfunnel.base.repositories import EventStore, OutputRepository, WatermarkStore
from clickfunnel.base.runner import BaseRunner
from clickfunnel.core.funnel_aggregator import SUMMARY_WATERMARK
from clickfunnel.core.models import AnomalyReason, DataQualityReport, Event
from clickfunnel.core.pipeline import SessionPipeline
from clickfunnel.core.price_variation import collect_observations, split_price_anomalies
from clickfunnel.utils.timing import StageTimer

logger = logging.getLogger(__name__)


class PipelineReport(BaseModel):
    """Counts reported at the end of a pipeline run."""

    events: int = 0
    sessions: int = 0
    clean_sessions: int = 0
    data_quality: DataQualityReport = Field(default_factory=DataQualityReport)
    quarantined_sessions: dict[str, int] = Field(default_factory=dict)
    quarantined_events: dict[str, int] = Field(default_factory=dict)
    summary_batches: int = 0
    summaries_inserted: int = 0
    summaries_pruned: int = 0
    watermark: str | None = None
    completed: bool = True
    products: int = 0
    price_anomalies: int = 0
    stage_ms: dict[str, float] = Field(default_factory=dict)


class PipelineRunner(BaseRunner):
    """
    Connects storage adapters to a SessionPipeline.

    Args:
        event_store: Source of deduplicated events
        repository: Destination for output tables
        watermarks: Resume points for the summary step
        pipeline: Configured pipeline stages
        restart: Clear the summary watermark and table before running
        log_level: Logging level for basicConfig
    """

    def __init__(
        self,
        event_store: EventStore,
        repository: OutputRepository,
        watermarks: WatermarkStore,
        pipeline: SessionPipeline,
        restart: bool = False,
        log_level: str = "INFO",
    ):
        super().__init__(log_level=log_level)
        self._event_store = event_store
        self._repository = repository
        self._watermarks = watermarks
        self._pipeline = pipeline
        self._restart = restart
        self._timer = StageTimer(log=logger)

    def _run(self) -> PipelineReport:
        self._event_store.connect()
        self._repository.connect()
        self._watermarks.connect()

        timer = self._timer
        pipeline = self._pipeline

        with timer.stage("load"):
            events = [Event.model_validate(record) for record in self._event_store.load()]
        logger.info("Loaded %d events", len(events))

        with timer.stage("sessionize", records=len(events)):
            sessionized = pipeline.sessionizer.sessionize(events)

        with timer.stage("classify", records=len(sessionized.sessions)):
            classification = pipeline.classifier.classify(sessionized.sessions, events)

        with timer.stage("prices", records=len(events)):
            priced, price_anomalies = split_price_anomalies(events)
            variations = pipeline.price_analyzer.analyze(collect_observations(priced))

        quarantine = {
            reason.value: [e.to_db_record() for e in classification.quarantined_events(reason)]
            for reason in AnomalyReason
        }
        with timer.stage("persist", records=len(classification.clean_sessions)):
            self._repository.save_outputs(
                sessions=[s.to_db_record() for s in classification.clean_sessions],
                quarantine=quarantine,
                price_anomalies=[e.to_db_record() for e in price_anomalies],
                price_variations=[v.to_db_record() for v in variations],
            )

        if self._restart:
            logger.info("Restart requested; clearing session summaries and watermark")
            self._repository.clear_summaries()
            self._watermarks.clear(SUMMARY_WATERMARK)

        clean_ids = classification.clean_session_ids
        pruned = self._repository.prune_summaries(clean_ids)

        with timer.stage("summarize", records=len(classification.clean_events)):
            stats = pipeline.aggregator.run(
                classification.clean_events,
                self._repository,
                self._watermarks,
                session_ids=clean_ids,
                should_stop=lambda: self.shutdown_requested,
            )

        timer.log_final_summary()
        return PipelineReport(
            events=len(events),
            sessions=len(sessionized.sessions),
            clean_sessions=len(classification.clean_sessions),
            data_quality=sessionized.report,
            quarantined_sessions=classification.session_counts(),
            quarantined_events=classification.event_counts(),
            summary_batches=stats.batches,
            summaries_inserted=stats.inserted,
            summaries_pruned=pruned,
            watermark=stats.watermark,
            completed=stats.completed,
            products=len(variations),
            price_anomalies=len(price_anomalies),
            stage_ms=timer.stages,
        )

    def _on_shutdown_requested(self) -> None:
        logger.info("Stopping after the current summary batch")

    def _cleanup(self) -> None:
        for resource in (self._watermarks, self._repository, self._event_store):
            resource.close()
