# ==============================================================================
# Clickfunnel CLI
# ==============================================================================
"""
Command-line interface for the clickstream sessionization and funnel pipeline.

Usage:
    clickfunnel --help
    clickfunnel config show
    clickfunnel db init
    clickfunnel data load data/2019-Oct.csv
    clickfunnel data reset -y
    clickfunnel pipeline run
    clickfunnel analytics
    clickfunnel prices --limit 20
"""

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
import os

import typer

if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="clickfunnel",
    help="Clickstream sessionization and funnel pipeline CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

data_app = typer.Typer(
    help="Event data operations",
    no_args_is_help=True,
)
app.add_typer(data_app, name="data")

# Register data commands from cli.data module
from clickfunnel.cli.data import data_load, data_reset

data_app.command("load")(data_load)
data_app.command("reset")(data_reset)

db_app = typer.Typer(
    help="PostgreSQL schema operations",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

from clickfunnel.cli.db import db_init

db_app.command("init")(db_init)

pipeline_app = typer.Typer(
    help="Batch pipeline operations",
    no_args_is_help=True,
)
app.add_typer(pipeline_app, name="pipeline")

from clickfunnel.cli.pipeline import pipeline_run

pipeline_app.command("run")(pipeline_run)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

from clickfunnel.cli.config import config_show

config_app.command("show")(config_show)

# Read-only output commands
from clickfunnel.cli.analytics import show_analytics
from clickfunnel.cli.prices import show_prices

app.command("analytics")(show_analytics)
app.command("prices")(show_prices)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
