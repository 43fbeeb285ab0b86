# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the clickfunnel CLI.
"""

import json
from typing import Annotated

import typer

from clickfunnel.cli.shared import C
from clickfunnel.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    settings = get_settings()

    if json_output:
        config = {
            "storage": {
                "backend": settings.storage.backend,
                "data_dir": str(settings.storage.data_dir_path),
            },
            "postgresql": {
                "host": settings.postgres.host,
                "port": settings.postgres.port,
                "database": settings.postgres.database,
                "schema": settings.postgres.schema_name,
                "user": settings.postgres.user,
                "password": settings.postgres.password,
                "sslmode": settings.postgres.sslmode,
            },
            "pipeline": settings.pipeline.model_dump(),
            "log_level": settings.log_level,
            "debug": settings.debug,
        }
        print(json.dumps(config, indent=2))
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}Storage{C.RESET}")
    print(f"  Backend:    {C.WHITE}{settings.storage.backend}{C.RESET}")
    print(f"  Data Dir:   {C.WHITE}{settings.storage.data_dir_path}{C.RESET}")
    print()

    print(f"{C.CYAN}PostgreSQL{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.postgres.host}{C.RESET}")
    print(f"  Port:       {C.WHITE}{settings.postgres.port}{C.RESET}")
    print(f"  Database:   {C.WHITE}{settings.postgres.database}{C.RESET}")
    print(f"  Schema:     {C.WHITE}{settings.postgres.schema_name}{C.RESET}")
    print(f"  User:       {C.WHITE}{settings.postgres.user}{C.RESET}")
    print(f"  SSL:        {C.WHITE}{settings.postgres.sslmode}{C.RESET}")
    print()

    pipeline = settings.pipeline
    print(f"{C.CYAN}Pipeline{C.RESET}")
    print(f"  Max Session:   {C.WHITE}{pipeline.max_session_minutes} minutes{C.RESET}")
    print(f"  Batch Size:    {C.WHITE}{pipeline.summary_batch_size:,} sessions{C.RESET}")
    print(f"  Partitions:    {C.WHITE}{pipeline.partitions}{C.RESET}")
    print(f"  Workers:       {C.WHITE}{pipeline.workers}{C.RESET}")
    print(
        f"  Placeholders:  {C.WHITE}session='{pipeline.placeholder_session_id}', "
        f"brand='{pipeline.placeholder_brand}'{C.RESET}"
    )
    print()
