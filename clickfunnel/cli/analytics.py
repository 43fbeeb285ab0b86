# ==============================================================================
# Analytics Command
# ==============================================================================
"""
Analytics command for the clickfunnel CLI.

Displays conversion funnel metrics and quarantine counts from the
configured storage backend.
"""

from typing import Annotated

import typer

from clickfunnel.cli.shared import (
    BOX_WIDTH,
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _section_header,
    open_output_repository,
)


def _rate(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 1) if whole else 0.0


def funnel_metrics(totals: dict) -> dict:
    """Add conversion rates to raw funnel totals."""
    return {
        **totals,
        "conversion_rate": _rate(totals["purchase_sessions"], totals["sessions"]),
        "cart_abandonment": _rate(
            totals["cart_sessions"] - min(totals["purchase_sessions"], totals["cart_sessions"]),
            totals["cart_sessions"],
        ),
    }


# ==============================================================================
# Commands
# ==============================================================================


def show_analytics(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Show funnel analytics and quarantine counts.

    Funnel metrics cover every summarized clean session. Quarantine counts
    are grouped by anomaly reason.

    Examples:
        clickfunnel analytics          # Formatted table output
        clickfunnel analytics --json   # JSON output for scripting
    """
    import json

    try:
        with open_output_repository() as repository:
            totals = repository.get_funnel_totals()
            quarantine = repository.get_quarantine_counts()
    except Exception as e:
        totals, quarantine = None, {}
        error = str(e)
    else:
        error = "No data available; run 'clickfunnel pipeline run' first"

    if totals is None:
        if json_output:
            print(json.dumps({"error": error}))
        else:
            print(f"\n{C.BRIGHT_RED}{I.CROSS} {error}{C.RESET}\n")
        raise typer.Exit(1)

    metrics = funnel_metrics(totals)

    if json_output:
        print(json.dumps({"funnel": metrics, "quarantine": quarantine}, indent=2))
        return

    W = BOX_WIDTH
    INNER = W - 2

    print()
    print(_box_header("CLICKFUNNEL ANALYTICS", W))
    print(_empty_line(W))

    print(_box_line(f"  {'Sessions':<40}{metrics['sessions']:>22,}  ", W))
    print(_box_line(f"  {'  -> Added to Cart':<40}{metrics['cart_sessions']:>22,}  ", W))
    print(_box_line(f"  {'  -> Purchased':<40}{metrics['purchase_sessions']:>22,}  ", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Conversion Rate':<40}{metrics['conversion_rate']:>21.1f}%  ", W))
    print(_box_line(f"  {'Cart Abandonment':<40}{metrics['cart_abandonment']:>21.1f}%  ", W))
    print(_empty_line(W))

    print(_box_line(f"  {'Events':<26}{'Viewed':>9}{'Carted':>9}{'Bought':>9}{'Removed':>9}  ", W))
    print(_box_line("  " + "─" * (INNER - 4) + "  ", W))
    print(
        _box_line(
            f"  {'':<26}{metrics['viewed']:>9,}{metrics['carted']:>9,}"
            f"{metrics['purchased']:>9,}{metrics['removed']:>9,}  ",
            W,
        )
    )
    print(_empty_line(W))

    print(_section_header("Quarantine", W))
    if not quarantine:
        print(_box_line(f"  {C.DIM}No quarantined sessions{C.RESET}", W))
    for reason, counts in quarantine.items():
        row = f"  {reason:<26}{counts['sessions']:>13,} sess {counts['events']:>12,} evts  "
        print(_box_line(row, W))
    print(_empty_line(W))
    print(_box_bottom(W))
    print()
