# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for the clickfunnel pipeline.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- data.py: Loading CSV exports and resetting storage
- db.py: PostgreSQL schema setup
- pipeline.py: Running the batch pipeline
- analytics.py / prices.py: Reading pipeline outputs
- config.py: Showing configuration
"""

from clickfunnel.cli.shared import (
    BOX_WIDTH,
    B,
    Box,
    C,
    Colors,
    I,
    Icons,
    fail,
    open_output_repository,
)

__all__ = [
    "BOX_WIDTH",
    "B",
    "Box",
    "C",
    "Colors",
    "I",
    "Icons",
    "fail",
    "open_output_repository",
]
