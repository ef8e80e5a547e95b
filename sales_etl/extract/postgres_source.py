"""
Postgres extractor: stream a table through a server-side cursor.

Rows are fetched in batches with `fetchmany` so large tables never sit in
memory as one result set.
"""

from __future__ import annotations

from typing import Iterator, List, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from sales_etl.config import get_settings
from sales_etl.errors import ExtractionError
from sales_etl.extract.abstract import AbstractExtractor, RawRecord
from sales_etl.infrastructure.db_factory import apply_statement_timeout, get_sync_connection
from sales_etl.utils.logging import get_logger

log = get_logger(__name__)


def _batched_fetch(cursor: psycopg.Cursor, batch_size: int) -> Iterator[List[RawRecord]]:
    """
    Yield batches from a cursor using fetchmany.
    """
    while True:
        batch = cursor.fetchmany(batch_size)
        if not batch:
            break
        yield batch


def _table_identifier(table: str) -> sql.Identifier:
    return sql.Identifier(*table.split("."))


class PostgresExtractor(AbstractExtractor):
    """
    Read every row of a table (optionally schema-qualified) as dicts.
    """

    name: str = "postgres"
    description: str = "Postgres table via server-side cursor with fetchmany batching."

    def __init__(
        self,
        table: str,
        batch_size: Optional[int] = None,
        dsn_override: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.table = table
        self.batch_size = batch_size or settings.etl_batch_size
        self._dsn_override = dsn_override

    def extract(self) -> Iterator[RawRecord]:
        query = sql.SQL("SELECT * FROM {}").format(_table_identifier(self.table))
        timeout_ms = get_settings().db_statement_timeout_ms

        try:
            conn = get_sync_connection(self._dsn_override)
        except psycopg.Error as exc:
            raise ExtractionError(f"Could not connect to source database: {exc}") from exc

        rows_read = 0
        try:
            with conn.cursor() as setup:
                apply_statement_timeout(setup, timeout_ms)
            # Named cursor -> server-side cursor
            with conn.cursor(name="sales_etl_extract", row_factory=dict_row) as cur:
                cur.execute(query)
                for batch in _batched_fetch(cur, self.batch_size):
                    rows_read += len(batch)
                    yield from batch
        except psycopg.Error as exc:
            raise ExtractionError(f"Could not read table '{self.table}': {exc}") from exc
        finally:
            conn.close()
            log.debug(
                "Postgres source closed",
                extra={"table": self.table, "rows": rows_read},
            )


__all__ = ["PostgresExtractor"]
