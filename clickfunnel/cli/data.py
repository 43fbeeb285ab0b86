# ==============================================================================
# Data Commands
# ==============================================================================
"""
Data management commands for the clickfunnel CLI.

Commands for loading CSV exports into the event store and resetting
pipeline outputs.
"""

from pathlib import Path
from typing import Annotated

import typer

from clickfunnel.cli.shared import C, I, fail, open_output_repository
from clickfunnel.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def data_load(
    files: Annotated[
        list[Path],
        typer.Argument(help="CSV exports to load, in order", exists=True, dir_okay=False),
    ],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", help="Maximum rows to read per file", min=1),
    ] = None,
) -> None:
    """Load clickstream CSV exports into the event store.

    Event types are normalized, missing brand/session/price values get
    placeholders, and duplicate events are dropped. Loading the same file
    twice stores nothing new.

    Examples:
        clickfunnel data load data/2019-Oct.csv data/2019-Nov.csv
        clickfunnel data load data/2019-Oct.csv --limit 10000
    """
    from clickfunnel.infrastructure import get_event_store, load_files

    settings = get_settings()
    store = get_event_store(settings)

    print()
    try:
        store.connect()
        summaries = load_files(
            store,
            files,
            placeholder_session_id=settings.pipeline.placeholder_session_id,
            placeholder_brand=settings.pipeline.placeholder_brand,
            limit=limit,
        )
    except Exception as e:
        fail(f"Failed to load events: {e}")
        raise typer.Exit(1)
    finally:
        store.close()

    for summary in summaries:
        result = summary.result
        print(
            f"{C.BRIGHT_GREEN}{I.CHECK} {summary.path.name}: "
            f"{C.WHITE}{summary.inserted:,}{C.RESET} stored, "
            f"{result.rows_read:,} read, {result.duplicates_dropped:,} duplicates, "
            f"{result.placeholder_sessions:,} placeholder sessions{C.RESET}"
        )
    print()


def data_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
    keep_events: Annotated[
        bool, typer.Option("--keep-events", help="Keep loaded events; reset outputs only")
    ] = False,
) -> None:
    """Delete stored events, pipeline outputs and watermarks.

    With --keep-events the loaded events survive, so the next 'pipeline run'
    rebuilds every output table from the same input.

    Examples:
        clickfunnel data reset                  # With confirmation prompt
        clickfunnel data reset -y               # Skip confirmation
        clickfunnel data reset -y --keep-events
    """
    from clickfunnel.core.funnel_aggregator import SUMMARY_WATERMARK
    from clickfunnel.infrastructure import get_event_store, get_watermark_store

    settings = get_settings()
    scope = "pipeline outputs" if keep_events else "all events and pipeline outputs"

    print()
    if not confirm:
        typer.confirm(
            f"This will DELETE {scope} from the '{settings.storage.backend}' backend. "
            "Are you sure?",
            abort=True,
        )
        print()

    store = get_event_store(settings)
    watermarks = get_watermark_store(settings)
    try:
        with open_output_repository(settings) as repository:
            repository.reset()
        watermarks.connect()
        watermarks.clear(SUMMARY_WATERMARK)
        if not keep_events:
            store.connect()
            store.clear()
    except Exception as e:
        fail(f"Failed to reset data: {e}")
        raise typer.Exit(1)
    finally:
        watermarks.close()
        store.close()

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Reset {scope}{C.RESET}")
    print()
