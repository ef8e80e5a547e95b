"""
Infrastructure package for the sales ETL pipeline.

Centralizes database connectivity concerns (DSN, connections, pooling).
Keep this layer focused on I/O and resource management, decoupled from
stage and orchestrator logic.
"""

from sales_etl.infrastructure.db_factory import (
    apply_statement_timeout,
    build_dsn,
    create_sync_pool,
    get_sync_connection,
)

__all__ = [
    "apply_statement_timeout",
    "build_dsn",
    "create_sync_pool",
    "get_sync_connection",
]
