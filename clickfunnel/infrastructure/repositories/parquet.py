# ==============================================================================
# Parquet Repository Implementations
# ==============================================================================
"""
Local Parquet implementations of the repository interfaces.

Each table is one Parquet file under a data directory, read and written with
Polars. Used for offline runs without a database server.

Provides:
- ParquetEventStore: events.parquet, deduplicated on the event key
- ParquetOutputRepository: sessions, quarantine, summaries, price tables
- JsonWatermarkStore: watermarks.json
"""

import json
import logging
from collections.abc import Collection
from decimal import Decimal
from pathlib import Path

import polars as pl

from clickfunnel.base.repositories import EventStore, OutputRepository, WatermarkStore
from clickfunnel.infrastructure.loader import DEDUP_KEY

logger = logging.getLogger(__name__)

EVENT_SCHEMA = {
    "event_id": pl.Int64,
    "event_time": pl.Datetime("us"),
    "event_type": pl.Utf8,
    "user_id": pl.Int64,
    "session_id": pl.Utf8,
    "product_id": pl.Int64,
    "price": pl.Float64,
    "category_id": pl.Int64,
    "brand": pl.Utf8,
    "placeholder_session": pl.Boolean,
}

QUARANTINE_SCHEMA = {"reason": pl.Utf8, **EVENT_SCHEMA}

SESSION_SCHEMA = {
    "session_id": pl.Utf8,
    "user_id": pl.Int64,
    "session_start": pl.Datetime("us"),
    "session_end": pl.Datetime("us"),
    "duration_minutes": pl.Int64,
    "weekday": pl.Int64,
    "month": pl.Int64,
    "session_hour": pl.Int64,
    "week": pl.Int64,
}

SUMMARY_SCHEMA = {
    "session_id": pl.Utf8,
    "viewed": pl.Int64,
    "carted": pl.Int64,
    "purchased": pl.Int64,
    "removed": pl.Int64,
}

VARIATION_SCHEMA = {
    "product_id": pl.Int64,
    "min_price": pl.Float64,
    "max_price": pl.Float64,
    "variation_pct": pl.Float64,
}

_DECIMAL_COLUMNS = ("price", "min_price", "max_price", "variation_pct")


def _to_decimal(value: float | None) -> Decimal | None:
    """Stored floats back to two-decimal Decimals."""
    return None if value is None else Decimal(f"{value:.2f}")


def _frame(records: list[dict], schema: dict) -> pl.DataFrame:
    """Build a DataFrame with a fixed schema; Decimals are stored as floats."""
    if not records:
        return pl.DataFrame(schema=schema)
    rows = [
        {
            key: float(row[key])
            if key in _DECIMAL_COLUMNS and row.get(key) is not None
            else row.get(key)
            for key in schema
        }
        for row in records
    ]
    return pl.DataFrame(rows, schema=schema)


def _records(df: pl.DataFrame) -> list[dict]:
    """DataFrame rows as dicts with Decimal price columns restored."""
    decimals = [c for c in _DECIMAL_COLUMNS if c in df.columns]
    rows = df.to_dicts()
    for row in rows:
        for column in decimals:
            row[column] = _to_decimal(row[column])
    return rows


class _ParquetTables:
    """Read/write helpers for Parquet files in one directory."""

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def connect(self) -> None:
        """Create the data directory if needed."""
        self._data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("%s using %s", type(self).__name__, self._data_dir)

    def close(self) -> None:
        """Nothing to release; files are closed after each operation."""
        pass

    def _path(self, table: str) -> Path:
        return self._data_dir / f"{table}.parquet"

    def _read(self, table: str, schema: dict) -> pl.DataFrame:
        path = self._path(table)
        if not path.exists():
            return pl.DataFrame(schema=schema)
        return pl.read_parquet(path)

    def _write(self, table: str, df: pl.DataFrame) -> None:
        path = self._path(table)
        tmp = path.with_suffix(".parquet.tmp")
        df.write_parquet(tmp)
        tmp.replace(path)


class ParquetEventStore(_ParquetTables, EventStore):
    """Event store backed by events.parquet."""

    TABLE = "events"

    def append(self, events: list[dict]) -> int:
        """
        Append events, dropping any whose dedup key is already stored.

        Returns:
            Count of events newly stored
        """
        if not events:
            return 0
        existing = self._read(self.TABLE, EVENT_SCHEMA)
        combined = pl.concat([existing, _frame(events, EVENT_SCHEMA)], how="vertical_relaxed")
        combined = combined.unique(subset=DEDUP_KEY, keep="first", maintain_order=True)
        inserted = combined.height - existing.height
        self._write(self.TABLE, combined)
        logger.debug("Appended %d of %d events", inserted, len(events))
        return inserted

    def load(self) -> list[dict]:
        return _records(self._read(self.TABLE, EVENT_SCHEMA).sort("event_id"))

    def max_event_id(self) -> int:
        df = self._read(self.TABLE, EVENT_SCHEMA)
        if df.is_empty():
            return 0
        return int(df["event_id"].max())

    def clear(self) -> None:
        self._path(self.TABLE).unlink(missing_ok=True)


class ParquetOutputRepository(_ParquetTables, OutputRepository):
    """Output tables as Parquet files; summaries are insert-if-absent."""

    OUTPUT_TABLES = (
        "sessions",
        "quarantine_events",
        "session_summary",
        "price_anomalies",
        "product_price_variations",
    )

    def save_sessions(self, sessions: list[dict]) -> int:
        self._write("sessions", _frame(sessions, SESSION_SCHEMA))
        return len(sessions)

    def save_quarantine(self, reason: str, events: list[dict]) -> int:
        existing = self._read("quarantine_events", QUARANTINE_SCHEMA)
        kept = existing.filter(pl.col("reason") != reason)
        added = _frame([{**e, "reason": reason} for e in events], QUARANTINE_SCHEMA)
        self._write("quarantine_events", pl.concat([kept, added], how="vertical_relaxed"))
        return len(events)

    def insert_summaries(self, summaries: list[dict]) -> int:
        existing = self._read("session_summary", SUMMARY_SCHEMA)
        seen = set(existing["session_id"].to_list())
        new_rows = []
        for row in summaries:
            if row["session_id"] not in seen:
                seen.add(row["session_id"])
                new_rows.append(row)
        if new_rows:
            combined = pl.concat([existing, _frame(new_rows, SUMMARY_SCHEMA)], how="vertical_relaxed")
            self._write("session_summary", combined)
        return len(new_rows)

    def clear_summaries(self) -> None:
        self._path("session_summary").unlink(missing_ok=True)

    def prune_summaries(self, keep_ids: Collection[str]) -> int:
        existing = self._read("session_summary", SUMMARY_SCHEMA)
        keep = pl.Series(sorted(keep_ids), dtype=pl.Utf8)
        kept = existing.filter(pl.col("session_id").is_in(keep))
        deleted = existing.height - kept.height
        if deleted:
            self._write("session_summary", kept)
            logger.info("Pruned %d session summaries no longer clean", deleted)
        return deleted

    def save_price_variations(self, variations: list[dict]) -> int:
        self._write("product_price_variations", _frame(variations, VARIATION_SCHEMA))
        return len(variations)

    def save_price_anomalies(self, events: list[dict]) -> int:
        self._write("price_anomalies", _frame(events, EVENT_SCHEMA))
        return len(events)

    def get_funnel_totals(self) -> dict | None:
        df = self._read("session_summary", SUMMARY_SCHEMA)
        if df.is_empty():
            return None
        row = df.select(
            pl.len().alias("sessions"),
            pl.col("viewed").sum(),
            pl.col("carted").sum(),
            pl.col("purchased").sum(),
            pl.col("removed").sum(),
            (pl.col("carted") > 0).sum().alias("cart_sessions"),
            (pl.col("purchased") > 0).sum().alias("purchase_sessions"),
        ).row(0, named=True)
        return {key: int(value) for key, value in row.items()}

    def get_quarantine_counts(self) -> dict[str, dict[str, int]]:
        df = self._read("quarantine_events", QUARANTINE_SCHEMA)
        counts = (
            df.group_by("reason")
            .agg(
                pl.col("session_id").n_unique().alias("sessions"),
                pl.len().alias("events"),
            )
            .sort("reason")
        )
        return {
            row["reason"]: {"sessions": int(row["sessions"]), "events": int(row["events"])}
            for row in counts.iter_rows(named=True)
        }

    def get_price_variations(self, limit: int = 10) -> list[dict]:
        df = self._read("product_price_variations", VARIATION_SCHEMA)
        top = df.sort(["variation_pct", "product_id"], descending=[True, False]).head(limit)
        return _records(top)

    def reset(self) -> None:
        for table in self.OUTPUT_TABLES:
            self._path(table).unlink(missing_ok=True)
        logger.info("Removed output tables from %s", self._data_dir)


class JsonWatermarkStore(WatermarkStore):
    """Watermarks kept as a JSON object in one file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    def connect(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        return json.loads(self._path.read_text())

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.write_text(json.dumps(data, indent=2, sort_keys=True))

    def get(self, name: str) -> str | None:
        return self._read_all().get(name)

    def set(self, name: str, value: str) -> None:
        data = self._read_all()
        data[name] = value
        self._write_all(data)

    def clear(self, name: str) -> None:
        data = self._read_all()
        if data.pop(name, None) is not None:
            self._write_all(data)

    def close(self) -> None:
        pass
