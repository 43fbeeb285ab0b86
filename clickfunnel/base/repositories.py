# ==============================================================================
# Repository Abstract Base Classes
# ==============================================================================
"""
Repository ABCs for data persistence.

These define the "what" (store events, save outputs) not the "how"
(ON CONFLICT clauses, Parquet anti-joins). Concrete implementations in
infrastructure/ handle the specifics.

Includes:
- EventStore: Deduplicated, append-only event collection
- OutputRepository: Sessions, quarantine, summaries and price tables
- WatermarkStore: Last processed key per incremental job
"""

from abc import ABC, abstractmethod
from collections.abc import Collection


class EventStore(ABC):
    """Durable, deduplicated collection of cleaned events."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def append(self, events: list[dict]) -> int:
        """
        Append events, ignoring any already present.

        Args:
            events: Event records (Event.to_db_record())

        Returns:
            Count of events newly stored
        """
        ...

    @abstractmethod
    def load(self) -> list[dict]:
        """
        Read every stored event.

        Returns:
            Event records ordered by event_id
        """
        ...

    @abstractmethod
    def max_event_id(self) -> int:
        """Highest stored event_id, or 0 when the store is empty."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Delete every stored event."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...


class OutputRepository(ABC):
    """Repository for the tables produced by a pipeline run."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def save_sessions(self, sessions: list[dict]) -> int:
        """
        Replace the stored clean session metadata, keyed by (session_id, user_id).

        Returns:
            Count of sessions saved
        """
        ...

    @abstractmethod
    def save_quarantine(self, reason: str, events: list[dict]) -> int:
        """
        Replace the quarantined raw events stored under an anomaly reason.

        Args:
            reason: AnomalyReason value
            events: Event records

        Returns:
            Count of events saved
        """
        ...

    @abstractmethod
    def insert_summaries(self, summaries: list[dict]) -> int:
        """
        Insert session summaries whose session_id is not stored yet.

        Existing rows are left untouched, never incremented.

        Returns:
            Count of summaries newly inserted
        """
        ...

    @abstractmethod
    def clear_summaries(self) -> None:
        """Delete every stored session summary."""
        ...

    @abstractmethod
    def prune_summaries(self, keep_ids: Collection[str]) -> int:
        """
        Delete stored summaries whose session_id is not in keep_ids.

        Returns:
            Count of summaries deleted
        """
        ...

    def save_outputs(
        self,
        sessions: list[dict],
        quarantine: dict[str, list[dict]],
        price_anomalies: list[dict],
        price_variations: list[dict],
    ) -> None:
        """
        Replace every full-refresh table with the output of one run.

        Writes table by table; stores that support transactions override
        this to commit all tables together.
        """
        self.save_sessions(sessions)
        for reason, events in quarantine.items():
            self.save_quarantine(reason, events)
        self.save_price_anomalies(price_anomalies)
        self.save_price_variations(price_variations)

    @abstractmethod
    def save_price_variations(self, variations: list[dict]) -> int:
        """Replace the stored per-product price variations."""
        ...

    @abstractmethod
    def save_price_anomalies(self, events: list[dict]) -> int:
        """Replace the stored events whose price was zero or negative."""
        ...

    @abstractmethod
    def get_funnel_totals(self) -> dict | None:
        """
        Aggregate the session summary table.

        Returns:
            Dict with sessions, viewed, carted, purchased, removed,
            cart_sessions and purchase_sessions, or None when empty
        """
        ...

    @abstractmethod
    def get_quarantine_counts(self) -> dict[str, dict[str, int]]:
        """Quarantined sessions and events per reason."""
        ...

    @abstractmethod
    def get_price_variations(self, limit: int = 10) -> list[dict]:
        """Products with the largest variation_pct, highest first."""
        ...

    @abstractmethod
    def reset(self) -> None:
        """Delete every output table."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...


class WatermarkStore(ABC):
    """Persisted resume points for incremental jobs."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def get(self, name: str) -> str | None:
        """Last processed key for a job, or None if it never ran."""
        ...

    @abstractmethod
    def set(self, name: str, value: str) -> None:
        """Record the last processed key for a job."""
        ...

    @abstractmethod
    def clear(self, name: str) -> None:
        """Forget a job's watermark so the next run starts from scratch."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...
