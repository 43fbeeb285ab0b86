# ==============================================================================
# Path Constants and Utilities
# ==============================================================================
"""
Project root detection and schema script paths.
"""

from pathlib import Path


def get_project_root() -> Path:
    """
    Get the project root directory.

    Looks for pyproject.toml next to the package, then in the current
    working directory. Falls back to the current working directory.

    Returns:
        Path to the project root directory
    """
    current = Path(__file__).parent.parent.parent  # utils/paths.py -> clickfunnel -> project
    if (current / "pyproject.toml").exists():
        return current

    return Path.cwd()


def get_schema_dir() -> Path:
    """Get the schema directory containing SQL scripts."""
    return get_project_root() / "schema"


def get_init_sql_path() -> Path:
    """Get the path to the database initialization SQL template."""
    return get_schema_dir() / "init.sql"
