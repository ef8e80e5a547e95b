"""
Database connection factory utilities for the sales ETL pipeline.

Builds DSNs from settings, opens dedicated connections with retry on transient
failures (tenacity), and creates connection pools for the loader.
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg import Connection
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sales_etl.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def apply_statement_timeout(cursor: psycopg.Cursor, timeout_ms: int) -> None:
    """
    Set a per-transaction statement timeout. A value of 0 leaves the server default.
    """
    if timeout_ms and timeout_ms > 0:
        cursor.execute(f"SET LOCAL statement_timeout = {int(timeout_ms)}")


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn_override: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Parameters
    ----------
    dsn_override : str | None
        Connect here instead of the DSN built from settings.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn_override or build_dsn())


def create_sync_pool(
    min_size: int = 1, max_size: int = 4, dsn_override: Optional[str] = None
) -> ConnectionPool:
    """
    Create and open a synchronous connection pool.

    The caller owns the pool and must close it.
    """
    return ConnectionPool(
        conninfo=dsn_override or build_dsn(),
        min_size=min_size,
        max_size=max_size,
        open=True,
    )


__all__ = [
    "apply_statement_timeout",
    "build_dsn",
    "create_sync_pool",
    "get_sync_connection",
]
