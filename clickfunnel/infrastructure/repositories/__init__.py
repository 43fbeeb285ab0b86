# ==============================================================================
# Storage Repository Adapters
# ==============================================================================
"""
Storage adapters implementing the repository interfaces from base/repositories.py.

Currently supported:
- Parquet files via Polars (parquet.py)
- PostgreSQL (postgresql.py)
"""

from clickfunnel.infrastructure.repositories.parquet import (
    JsonWatermarkStore,
    ParquetEventStore,
    ParquetOutputRepository,
)
from clickfunnel.infrastructure.repositories.postgresql import (
    PostgreSQLEventStore,
    PostgreSQLOutputRepository,
    PostgreSQLWatermarkStore,
    check_postgresql_connection,
)

__all__ = [
    "JsonWatermarkStore",
    "ParquetEventStore",
    "ParquetOutputRepository",
    "PostgreSQLEventStore",
    "PostgreSQLOutputRepository",
    "PostgreSQLWatermarkStore",
    "check_postgresql_connection",
]
