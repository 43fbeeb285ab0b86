# ==============================================================================
# Prices Command
# ==============================================================================
"""
Shows the products whose observed price varied the most.
"""

import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from clickfunnel.cli.shared import C, I, open_output_repository


def show_prices(
    limit: Annotated[
        int, typer.Option("--limit", "-l", help="Number of products to show", min=1)
    ] = 10,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show products with the largest price variation.

    Variation is (max - min) / min * 100, rounded to two decimals.

    Examples:
        clickfunnel prices
        clickfunnel prices --limit 25 --json
    """
    try:
        with open_output_repository() as repository:
            rows = repository.get_price_variations(limit=limit)
    except Exception as e:
        print(f"\n{C.BRIGHT_RED}{I.CROSS} Cannot read price variations: {e}{C.RESET}\n")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(rows, indent=2, default=str))
        return

    if not rows:
        print(f"\n{C.BRIGHT_YELLOW}{I.CIRCLE} No price variations stored yet{C.RESET}\n")
        return

    console = Console()
    table = Table(title="Price Variation", show_header=True, header_style="bold")
    table.add_column("Product", justify="right")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Variation", justify="right")

    for row in rows:
        table.add_row(
            str(row["product_id"]),
            f"{row['min_price']:.2f}",
            f"{row['max_price']:.2f}",
            f"{row['variation_pct']:.2f}%",
        )

    print()
    console.print(table)
    print()
