# ==============================================================================
# Database Utilities
# ==============================================================================
"""
Database utility functions for the PostgreSQL backend.

Provides schema initialization and reset. Includes retry logic with
exponential backoff for network resilience.
"""

import logging
from pathlib import Path

import psycopg2
from jinja2 import Template

from clickfunnel.utils.config import Settings, get_settings
from clickfunnel.utils.paths import get_init_sql_path
from clickfunnel.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_standard

logger = logging.getLogger(__name__)


def get_schema_file() -> Path | None:
    """Get the schema init.sql path, or None if not found."""
    path = get_init_sql_path()
    if path.exists():
        return path
    # Fallback to current directory
    cwd_path = Path.cwd() / "schema" / "init.sql"
    if cwd_path.exists():
        return cwd_path
    return None


def render_schema_sql(schema_name: str) -> str:
    """Render the schema SQL template with the given schema name."""
    schema_file = get_schema_file()
    if not schema_file:
        raise RuntimeError(
            "Schema file (schema/init.sql) not found. "
            "Make sure you're running from the project root."
        )

    template = Template(schema_file.read_text())
    return template.render(schema_name=schema_name)


@retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
def check_schema_exists(settings: Settings | None = None) -> bool:
    """
    Check if the events table exists in the configured schema.

    Retries on connection errors with exponential backoff (10 attempts, ~60 seconds).
    """
    settings = settings or get_settings()
    with psycopg2.connect(settings.postgres.connection_string, connect_timeout=5) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_schema = %s
                    AND table_name = 'events'
                )
                """,
                (settings.postgres.schema_name,),
            )
            result = cur.fetchone()
            return result[0] if result else False


def ensure_schema(settings: Settings | None = None) -> None:
    """
    Ensure database schema exists, initializing if needed.

    Idempotent; every statement in the template uses IF NOT EXISTS.

    Raises:
        RuntimeError: If schema file not found or initialization fails
    """
    settings = settings or get_settings()
    schema_name = settings.postgres.schema_name

    if check_schema_exists(settings):
        return

    logger.info("Initializing database schema '%s'...", schema_name)
    try:
        schema_sql = render_schema_sql(schema_name)
        with psycopg2.connect(settings.postgres.connection_string) as conn:
            with conn.cursor() as cur:
                cur.execute(schema_sql)
            conn.commit()
        logger.info("Database schema '%s' initialized.", schema_name)
    except psycopg2.Error as e:
        raise RuntimeError(f"Failed to initialize schema: {e}") from e


def reset_schema(settings: Settings | None = None) -> None:
    """
    Drop and recreate the database schema.

    WARNING: This deletes all events and outputs in the schema!
    """
    settings = settings or get_settings()
    schema_name = settings.postgres.schema_name

    try:
        schema_sql = render_schema_sql(schema_name)
        with psycopg2.connect(settings.postgres.connection_string) as conn:
            with conn.cursor() as cur:
                cur.execute(f"DROP SCHEMA IF EXISTS {schema_name} CASCADE")
                cur.execute(schema_sql)
            conn.commit()
        logger.info("Database schema '%s' reset.", schema_name)
    except psycopg2.Error as e:
        raise RuntimeError(f"Failed to reset schema: {e}") from e
