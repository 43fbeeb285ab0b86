# ==============================================================================
# Funnel Aggregator
# ==============================================================================
"""
Per-session funnel counts (viewed, carted, purchased, removed).

Counting is a pure function of the event partition. Events without a session
id or user id are never counted. Unrecognized or missing event types add
nothing to any bucket.

Incremental runs process session ids in ascending key order in bounded
batches. After each batch is persisted the watermark advances to the last
session id of that batch, and a resumed run continues strictly after it.
A run always processes every remaining session id; batch size only bounds
the work done between watermark updates. A completed run clears the
watermark. Persistence is insert-if-absent, so rescanning or repeating a
batch never double counts.
"""

import logging
from collections.abc import Callable, Collection, Iterable, Iterator, Sequence
from dataclasses import dataclass

from clickfunnel.base.repositories import OutputRepository, WatermarkStore
from clickfunnel.core.models import Event, EventType, SessionSummary
from clickfunnel.core.partitioning import map_partitions, partition

logger = logging.getLogger(__name__)

SUMMARY_WATERMARK = "session_summary"

DEFAULT_BATCH_SIZE = 500_000

# Event type -> SessionSummary field
_BUCKETS = {
    EventType.VIEWED: "viewed",
    EventType.CART: "carted",
    EventType.PURCHASED: "purchased",
    EventType.REMOVED: "removed",
}


@dataclass(frozen=True)
class SummaryBatch:
    """One bounded batch of summaries, ordered by session id."""

    summaries: tuple[SessionSummary, ...]
    last_session_id: str


@dataclass(frozen=True)
class AggregationStats:
    """What an incremental aggregation run did."""

    batches: int = 0
    summaries: int = 0
    inserted: int = 0
    watermark: str | None = None
    completed: bool = True


class FunnelAggregator:
    """
    Counts events by type for every session id.

    Args:
        batch_size: Sessions per persisted batch (performance only)
        partitions: Number of session_id shards counted independently
        workers: Threads used to count shards
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE, partitions: int = 1, workers: int = 1):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.partitions = max(1, partitions)
        self.workers = max(1, workers)

    @staticmethod
    def summarize(events: Iterable[Event]) -> dict[str, SessionSummary]:
        """
        Count events per session id.

        Args:
            events: Events from any set of sessions

        Returns:
            Dict mapping session_id to its SessionSummary
        """
        counts: dict[str, dict[str, int]] = {}
        for event in events:
            if not event.session_id or event.user_id is None:
                continue
            row = counts.setdefault(
                event.session_id, {"viewed": 0, "carted": 0, "purchased": 0, "removed": 0}
            )
            bucket = _BUCKETS.get(event.known_type)
            if bucket:
                row[bucket] += 1

        return {
            session_id: SessionSummary(session_id=session_id, **row)
            for session_id, row in counts.items()
        }

    def aggregate(
        self, events: Sequence[Event], session_ids: Collection[str] | None = None
    ) -> dict[str, SessionSummary]:
        """
        Count events for the given session ids across all partitions.

        Args:
            events: Clean events
            session_ids: Restrict output to these session ids (None for all)

        Returns:
            Dict mapping session_id to SessionSummary
        """
        if session_ids is not None:
            allowed = set(session_ids)
            events = [e for e in events if e.session_id in allowed]

        buckets = partition(events, lambda e: e.session_id, self.partitions)
        merged: dict[str, SessionSummary] = {}
        for fragment in map_partitions(self.summarize, buckets, self.workers):
            merged.update(fragment)
        return merged

    def iter_batches(
        self,
        events: Sequence[Event],
        session_ids: Collection[str] | None = None,
        after: str | None = None,
    ) -> Iterator[SummaryBatch]:
        """
        Yield summaries in ascending session id order, strictly after `after`.

        Args:
            events: Clean events
            session_ids: Restrict output to these session ids (None for all)
            after: Watermark; session ids <= after are skipped

        Yields:
            SummaryBatch objects of at most batch_size summaries
        """
        summaries = self.aggregate(events, session_ids)
        keys = sorted(k for k in summaries if after is None or k > after)

        for start in range(0, len(keys), self.batch_size):
            chunk = keys[start : start + self.batch_size]
            yield SummaryBatch(
                summaries=tuple(summaries[k] for k in chunk),
                last_session_id=chunk[-1],
            )

    def run(
        self,
        events: Sequence[Event],
        repository: OutputRepository,
        watermarks: WatermarkStore,
        session_ids: Collection[str] | None = None,
        should_stop: Callable[[], bool] | None = None,
        name: str = SUMMARY_WATERMARK,
    ) -> AggregationStats:
        """
        Persist summaries batch by batch, advancing the watermark.

        The watermark only marks a paused run. Once every batch is persisted
        it is cleared, so the next run rescans all session ids and picks up
        ids loaded since, whatever their sort position.

        Args:
            events: Clean events
            repository: Destination with insert-if-absent semantics
            watermarks: Where the last persisted session id is kept
            session_ids: Restrict output to these session ids (None for all)
            should_stop: Checked after each batch; True ends the run early
            name: Watermark key

        Returns:
            AggregationStats for this run; watermark is None once completed
        """
        watermark = watermarks.get(name)
        if watermark:
            logger.info("Resuming session summary after watermark %s", watermark)

        pending = list(self.iter_batches(events, session_ids, after=watermark))
        batches = 0
        summaries = 0
        inserted = 0
        for batch in pending:
            inserted += repository.insert_summaries([s.to_db_record() for s in batch.summaries])
            watermarks.set(name, batch.last_session_id)
            watermark = batch.last_session_id
            batches += 1
            summaries += len(batch.summaries)
            logger.info(
                "Summary batch %d/%d: %d sessions, watermark=%s",
                batches,
                len(pending),
                len(batch.summaries),
                watermark,
            )
            if batches < len(pending) and should_stop and should_stop():
                logger.info("Stop requested; summary run paused at watermark %s", watermark)
                return AggregationStats(batches, summaries, inserted, watermark, completed=False)

        watermarks.clear(name)
        return AggregationStats(batches, summaries, inserted, None, completed=True)
