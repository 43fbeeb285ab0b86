# ==============================================================================
# Pipeline Commands
# ==============================================================================
"""
Pipeline run command for the clickfunnel CLI.

Runs sessionization, anomaly quarantine, funnel summaries and price
variation over every stored event and prints a run report.
"""

import json
from typing import Annotated

import typer

from clickfunnel.cli.shared import (
    BOX_WIDTH,
    C,
    I,
    _box_bottom,
    _box_header,
    _empty_line,
    _kv_line,
    _section_header,
    fail,
)
from clickfunnel.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def pipeline_run(
    max_session_minutes: Annotated[
        int | None,
        typer.Option("--max-session-minutes", "-m", help="Duration threshold in minutes", min=0),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", help="Sessions per summary batch", min=1),
    ] = None,
    partitions: Annotated[
        int | None,
        typer.Option("--partitions", "-p", help="Shards for aggregation stages", min=1),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", help="Threads for aggregation stages", min=1),
    ] = None,
    restart: Annotated[
        bool,
        typer.Option("--restart", help="Clear session summaries and their watermark first"),
    ] = False,
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Run the batch pipeline over all stored events.

    Options left unset fall back to the PIPELINE_* settings. Press Ctrl+C to
    stop after the current summary batch; the next run resumes from the
    saved watermark.

    Examples:
        clickfunnel pipeline run
        clickfunnel pipeline run --max-session-minutes 60 --partitions 4 --workers 4
        clickfunnel pipeline run --restart --json
    """
    from clickfunnel.core.pipeline import SessionPipeline
    from clickfunnel.infrastructure import (
        get_event_store,
        get_output_repository,
        get_watermark_store,
    )
    from clickfunnel.pipeline_runner import PipelineRunner

    settings = get_settings()
    policy = settings.pipeline

    pipeline = SessionPipeline(
        max_session_minutes=(
            max_session_minutes if max_session_minutes is not None else policy.max_session_minutes
        ),
        placeholder_session_ids={policy.placeholder_session_id},
        batch_size=batch_size or policy.summary_batch_size,
        partitions=partitions or policy.partitions,
        workers=workers or policy.workers,
    )
    runner = PipelineRunner(
        event_store=get_event_store(settings),
        repository=get_output_repository(settings),
        watermarks=get_watermark_store(settings),
        pipeline=pipeline,
        restart=restart,
        log_level="DEBUG" if settings.debug else settings.log_level,
    )

    try:
        report = runner.run()
    except Exception as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            print()
            fail(f"Pipeline failed: {e}")
            print()
        raise typer.Exit(1)

    if report is None:
        fail("Pipeline interrupted")
        raise typer.Exit(1)

    if json_output:
        print(report.model_dump_json(indent=2))
        return

    W = BOX_WIDTH
    quality = report.data_quality

    print()
    print(_box_header("PIPELINE RUN", W))
    print(_empty_line(W))
    print(_kv_line("Events", report.events, W))
    print(_kv_line("Sessions", report.sessions, W))
    print(_kv_line("Clean sessions", report.clean_sessions, W))
    print(_empty_line(W))

    print(_section_header("Quarantine", W))
    for reason, sessions in report.quarantined_sessions.items():
        events = report.quarantined_events.get(reason, 0)
        print(_kv_line(reason, f"{sessions:,} sessions / {events:,} events", W))
    print(_empty_line(W))

    print(_section_header("Data Quality", W))
    print(_kv_line("Missing session id", quality.missing_session_id, W))
    print(_kv_line("Missing user id", quality.missing_user_id, W))
    print(_kv_line("Missing timestamp", quality.missing_timestamp, W))
    print(_kv_line("Unresolved sessions", quality.unresolved_sessions, W))
    print(_empty_line(W))

    print(_section_header("Outputs", W))
    print(_kv_line("Summaries inserted", report.summaries_inserted, W))
    print(_kv_line("Summary batches", report.summary_batches, W))
    print(_kv_line("Summaries pruned", report.summaries_pruned, W))
    print(_kv_line("Resume after", report.watermark or "-", W))
    print(_kv_line("Products with price variation", report.products, W))
    print(_kv_line("Price anomalies", report.price_anomalies, W))
    print(_empty_line(W))
    print(_box_bottom(W))

    if report.completed:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Pipeline complete{C.RESET}")
    else:
        print(
            f"{C.BRIGHT_YELLOW}{I.STOP} Stopped early; run again to resume after "
            f"{C.WHITE}{report.watermark}{C.RESET}"
        )
    print()
