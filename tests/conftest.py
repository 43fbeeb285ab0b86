# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- make_event: factory for Event objects with sensible defaults
- Parquet-backed stores rooted in a per-test temporary directory
- In-memory output repository and watermark store doubles
"""

from datetime import datetime, timedelta
from decimal import Decimal
from itertools import count

import pytest

from clickfunnel.base.repositories import OutputRepository, WatermarkStore
from clickfunnel.core.models import Event
from clickfunnel.infrastructure.repositories.parquet import (
    JsonWatermarkStore,
    ParquetEventStore,
    ParquetOutputRepository,
)

BASE_TIME = datetime(2019, 10, 1, 10, 0, 0)


@pytest.fixture()
def make_event():
    """Factory for Events; event ids increase with each call.

    `minute` is an offset from BASE_TIME; pass event_time=None explicitly
    for an event without a timestamp.
    """
    ids = count(1)

    def _make(
        session_id: str | None = "s1",
        user_id: int | None = 1,
        event_type: str | None = "viewed",
        minute: float = 0,
        product_id: int | None = 100,
        price: str | Decimal | None = "10.00",
        **overrides,
    ) -> Event:
        fields = {
            "event_id": next(ids),
            "event_time": BASE_TIME + timedelta(minutes=minute),
            "event_type": event_type,
            "user_id": user_id,
            "session_id": session_id,
            "product_id": product_id,
            "price": Decimal(price) if isinstance(price, str) else price,
            "category_id": 1,
            "brand": "acme",
        }
        fields.update(overrides)
        return Event(**fields)

    return _make


class MemoryOutputRepository(OutputRepository):
    """OutputRepository double keeping every table in dicts."""

    def __init__(self):
        self.sessions: list[dict] = []
        self.quarantine: dict[str, list[dict]] = {}
        self.summaries: dict[str, dict] = {}
        self.price_variations: list[dict] = []
        self.price_anomalies: list[dict] = []
        self.insert_calls = 0
        self.connected = False

    def connect(self) -> None:
        self.connected = True

    def save_sessions(self, sessions):
        self.sessions = list(sessions)
        return len(sessions)

    def save_quarantine(self, reason, events):
        self.quarantine[reason] = list(events)
        return len(events)

    def insert_summaries(self, summaries):
        self.insert_calls += 1
        inserted = 0
        for row in summaries:
            if row["session_id"] not in self.summaries:
                self.summaries[row["session_id"]] = row
                inserted += 1
        return inserted

    def clear_summaries(self):
        self.summaries.clear()

    def prune_summaries(self, keep_ids):
        stale = [sid for sid in self.summaries if sid not in keep_ids]
        for sid in stale:
            del self.summaries[sid]
        return len(stale)

    def save_price_variations(self, variations):
        self.price_variations = list(variations)
        return len(variations)

    def save_price_anomalies(self, events):
        self.price_anomalies = list(events)
        return len(events)

    def get_funnel_totals(self):
        return None

    def get_quarantine_counts(self):
        return {
            reason: {"sessions": len({e["session_id"] for e in rows}), "events": len(rows)}
            for reason, rows in sorted(self.quarantine.items())
            if rows
        }

    def get_price_variations(self, limit=10):
        return self.price_variations[:limit]

    def reset(self):
        self.__init__()

    def close(self):
        self.connected = False


class MemoryWatermarkStore(WatermarkStore):
    """WatermarkStore double that records every value set."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.history: list[tuple[str, str]] = []

    def connect(self):
        pass

    def get(self, name):
        return self.values.get(name)

    def set(self, name, value):
        self.values[name] = value
        self.history.append((name, value))

    def clear(self, name):
        self.values.pop(name, None)

    def close(self):
        pass


@pytest.fixture()
def memory_repository():
    return MemoryOutputRepository()


@pytest.fixture()
def memory_watermarks():
    return MemoryWatermarkStore()


@pytest.fixture()
def event_store(tmp_path):
    store = ParquetEventStore(tmp_path)
    store.connect()
    yield store
    store.close()


@pytest.fixture()
def output_repository(tmp_path):
    repository = ParquetOutputRepository(tmp_path)
    repository.connect()
    yield repository
    repository.close()


@pytest.fixture()
def watermark_store(tmp_path):
    store = JsonWatermarkStore(tmp_path / "watermarks.json")
    store.connect()
    return store
