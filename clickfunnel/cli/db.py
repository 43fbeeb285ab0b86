# ==============================================================================
# Database Commands
# ==============================================================================
"""
PostgreSQL schema commands for the clickfunnel CLI.
"""

from typing import Annotated

import typer

from clickfunnel.cli.shared import C, I, fail
from clickfunnel.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def db_init(
    reset: Annotated[
        bool, typer.Option("--reset", help="Drop and recreate the schema (deletes all data)")
    ] = False,
) -> None:
    """Create the PostgreSQL schema and tables.

    Safe to run repeatedly; existing tables are left alone unless --reset
    is given.

    Examples:
        clickfunnel db init
        clickfunnel db init --reset
    """
    from clickfunnel.infrastructure.repositories.postgresql import check_postgresql_connection
    from clickfunnel.utils.db import ensure_schema, reset_schema

    settings = get_settings()
    schema_name = settings.postgres.schema_name

    print()
    if not check_postgresql_connection(settings):
        fail(f"Cannot connect to PostgreSQL at {settings.postgres.host}:{settings.postgres.port}")
        raise typer.Exit(1)

    try:
        if reset:
            reset_schema(settings)
        else:
            ensure_schema(settings)
    except RuntimeError as e:
        fail(str(e))
        raise typer.Exit(1)

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{C.WHITE}{schema_name}{C.BRIGHT_GREEN}' ready{C.RESET}")
    print()
