# ==============================================================================
# PostgreSQL Repository Implementations
# ==============================================================================
"""
PostgreSQL implementations of the repository interfaces.

Provides:
- PostgreSQLEventStore: Bulk insert events with deduplication
- PostgreSQLOutputRepository: Sessions, quarantine, summaries, price tables
- PostgreSQLWatermarkStore: Resume points for incremental jobs
"""

import logging
from collections.abc import Collection

import psycopg2
from psycopg2.extras import RealDictCursor, execute_batch, execute_values

from clickfunnel.base.repositories import EventStore, OutputRepository, WatermarkStore
from clickfunnel.utils.config import Settings, get_settings
from clickfunnel.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_light, retry_standard

logger = logging.getLogger(__name__)

# Batch size for execute_batch / execute_values
PAGE_SIZE = 1000

# Connection timeout
CONNECT_TIMEOUT = 10

EVENT_COLUMNS = (
    "event_id",
    "event_time",
    "event_type",
    "user_id",
    "session_id",
    "product_id",
    "price",
    "category_id",
    "brand",
    "placeholder_session",
)

_EVENT_PLACEHOLDERS = ", ".join(f"%({c})s" for c in EVENT_COLUMNS)
_EVENT_COLUMN_LIST = ", ".join(EVENT_COLUMNS)


def _add_connect_timeout(conn_string: str) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={CONNECT_TIMEOUT}"
    return conn_string


class _PostgreSQLConnection:
    """Connection lifecycle shared by the PostgreSQL repositories."""

    def __init__(self, settings: Settings | None = None):
        """
        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._conn: psycopg2.extensions.connection | None = None
        self._schema = self._settings.postgres.schema_name

    @retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
    def connect(self) -> None:
        """Establish connection to PostgreSQL."""
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        self._conn = psycopg2.connect(conn_string)
        logger.info("%s connected (schema=%s)", type(self).__name__, self._schema)

    def _require_connection(self) -> psycopg2.extensions.connection:
        if self._conn is None:
            raise RuntimeError("PostgreSQL connection not established. Call connect() first.")
        return self._conn

    def _write(self, statements):
        """Run statements(cursor) in one transaction; roll back on failure."""
        conn = self._require_connection()
        try:
            with conn.cursor() as cur:
                result = statements(cur)
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
        return result

    def close(self) -> None:
        """Close connection and release resources."""
        if self._conn:
            try:
                self._conn.close()
                logger.info("%s connection closed", type(self).__name__)
            except psycopg2.Error as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._conn = None


class PostgreSQLEventStore(_PostgreSQLConnection, EventStore):
    """
    PostgreSQL implementation of EventStore.

    The events table has a unique constraint on
    (event_time, event_type, user_id, product_id, session_id), so appends
    with ON CONFLICT DO NOTHING are idempotent.
    """

    def append(self, events: list[dict]) -> int:
        """
        Insert events, skipping duplicates.

        Returns:
            Count of events newly stored
        """
        if not events:
            return 0
        conn = self._require_connection()
        try:
            with conn.cursor() as cur:
                rows = execute_values(
                    cur,
                    f"""
                    INSERT INTO {self._schema}.events ({_EVENT_COLUMN_LIST})
                    VALUES %s
                    ON CONFLICT DO NOTHING
                    RETURNING event_id
                    """,
                    events,
                    template=f"({_EVENT_PLACEHOLDERS})",
                    page_size=PAGE_SIZE,
                    fetch=True,
                )
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
        logger.debug("Inserted %d of %d events", len(rows), len(events))
        return len(rows)

    def load(self) -> list[dict]:
        """Read every stored event ordered by event_id."""
        conn = self._require_connection()
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"SELECT {_EVENT_COLUMN_LIST} FROM {self._schema}.events ORDER BY event_id"
            )
            return [dict(row) for row in cur.fetchall()]

    def max_event_id(self) -> int:
        conn = self._require_connection()
        with conn.cursor() as cur:
            cur.execute(f"SELECT COALESCE(MAX(event_id), 0) FROM {self._schema}.events")
            result = cur.fetchone()
        return int(result[0]) if result else 0

    def clear(self) -> None:
        self._write(lambda cur: cur.execute(f"TRUNCATE {self._schema}.events"))
        logger.info("Truncated events in schema %s", self._schema)


class PostgreSQLOutputRepository(_PostgreSQLConnection, OutputRepository):
    """
    PostgreSQL implementation of OutputRepository.

    save_outputs() replaces the full-refresh tables (sessions, quarantine,
    price tables) in a single transaction. Session summaries use ON CONFLICT
    DO NOTHING so a repeated batch never changes an existing row.
    """

    OUTPUT_TABLES = (
        "sessions",
        "quarantine_events",
        "session_summary",
        "price_anomalies",
        "product_price_variations",
    )

    # --------------------------------------------------------------------------
    # Full-refresh statements (run inside a caller's transaction)
    # --------------------------------------------------------------------------

    def _replace_sessions(self, cur, sessions: list[dict]) -> None:
        cur.execute(f"DELETE FROM {self._schema}.sessions")
        execute_batch(
            cur,
            f"""
            INSERT INTO {self._schema}.sessions (
                session_id, user_id, session_start, session_end,
                duration_minutes, weekday, month, session_hour, week
            ) VALUES (
                %(session_id)s, %(user_id)s, %(session_start)s, %(session_end)s,
                %(duration_minutes)s, %(weekday)s, %(month)s, %(session_hour)s, %(week)s
            )
            """,
            sessions,
            page_size=PAGE_SIZE,
        )

    def _replace_quarantine(self, cur, reason: str, events: list[dict]) -> None:
        cur.execute(f"DELETE FROM {self._schema}.quarantine_events WHERE reason = %s", (reason,))
        execute_batch(
            cur,
            f"""
            INSERT INTO {self._schema}.quarantine_events (reason, {_EVENT_COLUMN_LIST})
            VALUES (%(reason)s, {_EVENT_PLACEHOLDERS})
            """,
            [{**event, "reason": reason} for event in events],
            page_size=PAGE_SIZE,
        )

    def _replace_price_variations(self, cur, variations: list[dict]) -> None:
        cur.execute(f"DELETE FROM {self._schema}.product_price_variations")
        execute_batch(
            cur,
            f"""
            INSERT INTO {self._schema}.product_price_variations
                (product_id, min_price, max_price, variation_pct)
            VALUES (%(product_id)s, %(min_price)s, %(max_price)s, %(variation_pct)s)
            """,
            variations,
            page_size=PAGE_SIZE,
        )

    def _replace_price_anomalies(self, cur, events: list[dict]) -> None:
        cur.execute(f"DELETE FROM {self._schema}.price_anomalies")
        execute_batch(
            cur,
            f"""
            INSERT INTO {self._schema}.price_anomalies ({_EVENT_COLUMN_LIST})
            VALUES ({_EVENT_PLACEHOLDERS})
            """,
            events,
            page_size=PAGE_SIZE,
        )

    # --------------------------------------------------------------------------
    # Writes
    # --------------------------------------------------------------------------

    def save_sessions(self, sessions: list[dict]) -> int:
        self._write(lambda cur: self._replace_sessions(cur, sessions))
        logger.debug("Saved %d sessions", len(sessions))
        return len(sessions)

    def save_quarantine(self, reason: str, events: list[dict]) -> int:
        self._write(lambda cur: self._replace_quarantine(cur, reason, events))
        logger.debug("Saved %d %s events", len(events), reason)
        return len(events)

    def save_price_variations(self, variations: list[dict]) -> int:
        self._write(lambda cur: self._replace_price_variations(cur, variations))
        return len(variations)

    def save_price_anomalies(self, events: list[dict]) -> int:
        self._write(lambda cur: self._replace_price_anomalies(cur, events))
        return len(events)

    def save_outputs(
        self,
        sessions: list[dict],
        quarantine: dict[str, list[dict]],
        price_anomalies: list[dict],
        price_variations: list[dict],
    ) -> None:
        def statements(cur):
            self._replace_sessions(cur, sessions)
            for reason, events in quarantine.items():
                self._replace_quarantine(cur, reason, events)
            self._replace_price_anomalies(cur, price_anomalies)
            self._replace_price_variations(cur, price_variations)

        self._write(statements)
        logger.info(
            "Saved %d sessions, %d quarantined events, %d price anomalies, %d products",
            len(sessions),
            sum(len(events) for events in quarantine.values()),
            len(price_anomalies),
            len(price_variations),
        )

    def insert_summaries(self, summaries: list[dict]) -> int:
        if not summaries:
            return 0
        conn = self._require_connection()
        try:
            with conn.cursor() as cur:
                rows = execute_values(
                    cur,
                    f"""
                    INSERT INTO {self._schema}.session_summary
                        (session_id, viewed, carted, purchased, removed)
                    VALUES %s
                    ON CONFLICT (session_id) DO NOTHING
                    RETURNING session_id
                    """,
                    summaries,
                    template="(%(session_id)s, %(viewed)s, %(carted)s, %(purchased)s, %(removed)s)",
                    page_size=PAGE_SIZE,
                    fetch=True,
                )
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
        logger.debug("Inserted %d of %d summaries", len(rows), len(summaries))
        return len(rows)

    def clear_summaries(self) -> None:
        self._write(lambda cur: cur.execute(f"DELETE FROM {self._schema}.session_summary"))

    def prune_summaries(self, keep_ids: Collection[str]) -> int:
        def statements(cur):
            cur.execute(
                f"DELETE FROM {self._schema}.session_summary WHERE NOT (session_id = ANY(%s))",
                (sorted(keep_ids),),
            )
            return cur.rowcount

        deleted = self._write(statements)
        if deleted:
            logger.info("Pruned %d session summaries no longer clean", deleted)
        return deleted

    def get_funnel_totals(self) -> dict | None:
        conn = self._require_connection()
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT
                    COUNT(*) AS sessions,
                    COALESCE(SUM(viewed), 0) AS viewed,
                    COALESCE(SUM(carted), 0) AS carted,
                    COALESCE(SUM(purchased), 0) AS purchased,
                    COALESCE(SUM(removed), 0) AS removed,
                    COUNT(*) FILTER (WHERE carted > 0) AS cart_sessions,
                    COUNT(*) FILTER (WHERE purchased > 0) AS purchase_sessions
                FROM {self._schema}.session_summary
                """
            )
            row = cur.fetchone()
        if not row or row["sessions"] == 0:
            return None
        return {key: int(value) for key, value in row.items()}

    def get_quarantine_counts(self) -> dict[str, dict[str, int]]:
        conn = self._require_connection()
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT reason, COUNT(DISTINCT session_id), COUNT(*)
                FROM {self._schema}.quarantine_events
                GROUP BY reason
                ORDER BY reason
                """
            )
            rows = cur.fetchall()
        return {reason: {"sessions": int(s), "events": int(e)} for reason, s, e in rows}

    def get_price_variations(self, limit: int = 10) -> list[dict]:
        conn = self._require_connection()
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT product_id, min_price, max_price, variation_pct
                FROM {self._schema}.product_price_variations
                ORDER BY variation_pct DESC, product_id
                LIMIT %s
                """,
                (limit,),
            )
            return [dict(row) for row in cur.fetchall()]

    def reset(self) -> None:
        tables = ", ".join(f"{self._schema}.{t}" for t in self.OUTPUT_TABLES)
        self._write(lambda cur: cur.execute(f"TRUNCATE {tables}"))
        logger.info("Truncated output tables in schema %s", self._schema)


class PostgreSQLWatermarkStore(_PostgreSQLConnection, WatermarkStore):
    """PostgreSQL implementation of WatermarkStore (one row per job name)."""

    def get(self, name: str) -> str | None:
        conn = self._require_connection()
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT last_key FROM {self._schema}.watermarks WHERE name = %s",
                (name,),
            )
            row = cur.fetchone()
        return row[0] if row else None

    def set(self, name: str, value: str) -> None:
        self._write(
            lambda cur: cur.execute(
                f"""
                INSERT INTO {self._schema}.watermarks (name, last_key, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (name) DO UPDATE SET
                    last_key = EXCLUDED.last_key,
                    updated_at = EXCLUDED.updated_at
                """,
                (name, value),
            )
        )

    def clear(self, name: str) -> None:
        self._write(
            lambda cur: cur.execute(
                f"DELETE FROM {self._schema}.watermarks WHERE name = %s", (name,)
            )
        )


@retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
def _ping(conn_string: str) -> None:
    conn = psycopg2.connect(conn_string)
    conn.close()


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if PostgreSQL is reachable, retrying briefly on connection errors.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    try:
        settings = settings or get_settings()
        conn_string = _add_connect_timeout(settings.postgres.connection_string)
        _ping(conn_string)
        return True
    except psycopg2.Error:
        return False
