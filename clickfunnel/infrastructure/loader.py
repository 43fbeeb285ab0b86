# ==============================================================================
# CSV Event Loader
# ==============================================================================
"""
Reads monthly clickstream exports into cleaned Event objects.

Uses Polars for fast CSV parsing and column-wise cleaning:
- Drops category_code (sparsely populated, unrelated to product/category ids)
- Normalizes event types (view -> viewed, remove_from_cart -> removed,
  purchase -> purchased; cart unchanged)
- Substitutes placeholders for missing brand, session and price values and
  tags events whose session id was substituted
- Deduplicates on (event_time, event_type, user_id, product_id, session_id)
- Assigns monotonic event ids in file order
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

import polars as pl

from clickfunnel.base.repositories import EventStore
from clickfunnel.core.models import Event

logger = logging.getLogger(__name__)

EVENT_TYPE_LABELS = {
    "view": "viewed",
    "remove_from_cart": "removed",
    "purchase": "purchased",
}

DEDUP_KEY = ["event_time", "event_type", "user_id", "product_id", "session_id"]

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Source column -> internal column
_RENAMES = {"user_session": "session_id"}

_STRING_COLUMNS = {
    "event_time": pl.Utf8,
    "event_type": pl.Utf8,
    "brand": pl.Utf8,
    "price": pl.Utf8,
    "user_session": pl.Utf8,
    "session_id": pl.Utf8,
    "category_code": pl.Utf8,
}


@dataclass
class LoadResult:
    """Events read from one file plus cleaning counts."""

    events: list[Event] = field(default_factory=list)
    rows_read: int = 0
    duplicates_dropped: int = 0
    placeholder_sessions: int = 0
    placeholder_brands: int = 0
    zero_prices: int = 0

    @property
    def next_event_id(self) -> int | None:
        """Event id the next file should start from."""
        return self.events[-1].event_id + 1 if self.events else None


def _is_blank(column: str) -> pl.Expr:
    return pl.col(column).is_null() | (pl.col(column).str.strip_chars() == "")


def clean_events_frame(
    df: pl.DataFrame,
    placeholder_session_id: str = "unknown",
    placeholder_brand: str = "No Brand",
) -> pl.DataFrame:
    """
    Apply renames, type normalization and placeholder substitution.

    Args:
        df: Raw export with string-typed event_time, brand, price, session columns
        placeholder_session_id: Substituted for missing session ids
        placeholder_brand: Substituted for missing brands

    Returns:
        Cleaned DataFrame (not yet deduplicated)
    """
    df = df.rename({k: v for k, v in _RENAMES.items() if k in df.columns})
    if "category_code" in df.columns:
        df = df.drop("category_code")

    for column in ("brand", "session_id", "price"):
        if column not in df.columns:
            df = df.with_columns(pl.lit(None, dtype=pl.Utf8).alias(column))

    return df.with_columns(
        pl.col("event_time")
        .str.strip_chars()
        .str.replace(r" UTC$", "")
        .str.strptime(pl.Datetime("us"), TIME_FORMAT, strict=False),
        pl.col("event_type").str.strip_chars().replace(EVENT_TYPE_LABELS),
        pl.when(_is_blank("brand"))
        .then(pl.lit(placeholder_brand))
        .otherwise(pl.col("brand"))
        .alias("brand"),
        _is_blank("session_id").alias("placeholder_session"),
        pl.when(_is_blank("session_id"))
        .then(pl.lit(placeholder_session_id))
        .otherwise(pl.col("session_id").str.strip_chars())
        .alias("session_id"),
        pl.col("price").str.strip_chars().cast(pl.Float64, strict=False).fill_null(0.0),
    )


def read_events_csv(
    filepath: Path,
    start_id: int = 1,
    placeholder_session_id: str = "unknown",
    placeholder_brand: str = "No Brand",
    limit: int | None = None,
) -> LoadResult:
    """
    Read an events CSV export.

    Args:
        filepath: Path to the CSV file
        start_id: event_id assigned to the first kept row
        placeholder_session_id: Substituted for missing session ids
        placeholder_brand: Substituted for missing brands
        limit: Maximum number of rows to read (None for all)

    Returns:
        LoadResult with events ordered by event_id
    """
    header = pl.scan_csv(filepath).collect_schema().names()
    raw = pl.read_csv(
        filepath,
        schema_overrides={k: v for k, v in _STRING_COLUMNS.items() if k in header},
        n_rows=limit,
        infer_schema_length=10000,
    )
    blank_brands = raw.select(_is_blank("brand").sum()).item() if "brand" in raw.columns else 0

    df = clean_events_frame(raw, placeholder_session_id, placeholder_brand)
    deduped = df.unique(subset=DEDUP_KEY, keep="first", maintain_order=True)
    deduped = deduped.with_row_index("event_id", offset=start_id).with_columns(
        pl.col("event_id").cast(pl.Int64)
    )

    events = [_to_event(row) for row in deduped.iter_rows(named=True)]

    result = LoadResult(
        events=events,
        rows_read=raw.height,
        duplicates_dropped=df.height - deduped.height,
        placeholder_sessions=int(deduped["placeholder_session"].sum()),
        placeholder_brands=int(blank_brands or 0),
        zero_prices=deduped.filter(pl.col("price") <= 0).height,
    )
    logger.info(
        "Read %d rows from %s: %d kept, %d duplicates, %d placeholder sessions",
        result.rows_read,
        filepath,
        len(events),
        result.duplicates_dropped,
        result.placeholder_sessions,
    )
    return result


def _to_event(row: dict) -> Event:
    """Build an Event from a cleaned row; prices are kept to two decimals."""
    return Event(
        event_id=row["event_id"],
        event_time=row.get("event_time"),
        event_type=row.get("event_type"),
        user_id=row.get("user_id"),
        session_id=row.get("session_id"),
        product_id=row.get("product_id"),
        price=Decimal(f"{row['price']:.2f}"),
        category_id=row.get("category_id"),
        brand=row.get("brand"),
        placeholder_session=bool(row.get("placeholder_session")),
    )


@dataclass
class FileLoadSummary:
    """Outcome of loading one file into the event store."""

    path: Path
    result: LoadResult
    inserted: int = 0


def load_files(
    store: EventStore,
    filepaths: list[Path],
    placeholder_session_id: str = "unknown",
    placeholder_brand: str = "No Brand",
    limit: int | None = None,
) -> list[FileLoadSummary]:
    """
    Read each CSV export in order and append its events to the store.

    Event ids continue from the store's current maximum, so files loaded in
    separate runs keep a single monotonic id sequence. Events already stored
    under the same dedup key are skipped by the store.

    Args:
        store: Connected event store
        filepaths: CSV exports, loaded in the given order
        placeholder_session_id: Substituted for missing session ids
        placeholder_brand: Substituted for missing brands
        limit: Maximum number of rows to read per file

    Returns:
        One FileLoadSummary per file
    """
    summaries = []
    for filepath in filepaths:
        start_id = store.max_event_id() + 1
        result = read_events_csv(
            filepath,
            start_id=start_id,
            placeholder_session_id=placeholder_session_id,
            placeholder_brand=placeholder_brand,
            limit=limit,
        )
        inserted = store.append([event.to_db_record() for event in result.events])
        logger.info("Stored %d of %d events from %s", inserted, len(result.events), filepath)
        summaries.append(FileLoadSummary(path=Path(filepath), result=result, inserted=inserted))
    return summaries
