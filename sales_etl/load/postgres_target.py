"""
Postgres loader: batched upserts inside a single transaction.

The whole load commits or rolls back as one unit, so a failure halfway
through never leaves a partially loaded table behind.
"""

from __future__ import annotations

from typing import Any, Iterator, List, Optional, Sequence, Tuple

import psycopg
from psycopg import sql
from psycopg_pool import ConnectionPool

from sales_etl.config import get_settings
from sales_etl.domain.models import CleanTransaction
from sales_etl.errors import LoadError
from sales_etl.infrastructure.db_factory import apply_statement_timeout, create_sync_pool
from sales_etl.load.abstract import LOAD_COLUMNS, AbstractLoader
from sales_etl.utils.logging import get_logger

log = get_logger(__name__)


def _table_identifier(table: str) -> sql.Identifier:
    return sql.Identifier(*table.split("."))


def create_table_sql(table: str) -> sql.Composed:
    return sql.SQL(
        """
        CREATE TABLE IF NOT EXISTS {} (
            transaction_id   TEXT PRIMARY KEY,
            product          TEXT NOT NULL,
            amount           NUMERIC(12, 2) NOT NULL CHECK (amount > 0),
            quantity         INTEGER NOT NULL CHECK (quantity >= 1),
            total_amount     NUMERIC(14, 2) NOT NULL,
            customer_id      TEXT NOT NULL,
            transaction_date DATE NOT NULL,
            region           TEXT,
            loaded_at        TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    ).format(_table_identifier(table))


def upsert_sql(table: str) -> sql.Composed:
    updates = sql.SQL(", ").join(
        sql.SQL("{0} = EXCLUDED.{0}").format(sql.Identifier(column))
        for column in LOAD_COLUMNS
        if column != "transaction_id"
    )
    return sql.SQL(
        "INSERT INTO {table} ({columns}) VALUES ({values}) "
        "ON CONFLICT (transaction_id) DO UPDATE SET {updates}, loaded_at = now()"
    ).format(
        table=_table_identifier(table),
        columns=sql.SQL(", ").join(map(sql.Identifier, LOAD_COLUMNS)),
        values=sql.SQL(", ").join(sql.Placeholder() * len(LOAD_COLUMNS)),
        updates=updates,
    )


def _row_params(record: CleanTransaction) -> Tuple[Any, ...]:
    return tuple(getattr(record, column) for column in LOAD_COLUMNS)


def _chunks(
    records: Sequence[CleanTransaction], size: int
) -> Iterator[Sequence[CleanTransaction]]:
    for start in range(0, len(records), size):
        yield records[start : start + size]


class PostgresLoader(AbstractLoader):
    """
    Upsert clean transactions into a Postgres table through a connection pool.

    The pool is created lazily on first load and dropped on `close()`, so an
    instance never hands out connections from a closed pool.
    """

    name: str = "postgres"
    description: str = "Postgres table, batched upsert in one transaction (psycopg pool)."

    def __init__(
        self,
        table: Optional[str] = None,
        batch_size: Optional[int] = None,
        pool_min_size: Optional[int] = None,
        pool_max_size: Optional[int] = None,
        create_table: bool = True,
        dsn_override: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.table = table or settings.etl_table
        self.batch_size = batch_size or settings.etl_batch_size
        self.pool_min_size = pool_min_size or settings.etl_pool_min_size
        self.pool_max_size = pool_max_size or settings.etl_pool_max_size
        self.create_table = create_table
        self._dsn_override = dsn_override
        self._pool_instance: ConnectionPool | None = None

    def _get_pool(self) -> ConnectionPool:
        if self._pool_instance is None:
            self._pool_instance = create_sync_pool(
                min_size=self.pool_min_size,
                max_size=self.pool_max_size,
                dsn_override=self._dsn_override,
            )
        return self._pool_instance

    def load(self, records: Sequence[CleanTransaction]) -> int:
        timeout_ms = get_settings().db_statement_timeout_ms
        statement = upsert_sql(self.table)
        loaded = 0

        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        apply_statement_timeout(cur, timeout_ms)
                        if self.create_table:
                            cur.execute(create_table_sql(self.table))
                        for batch in _chunks(records, self.batch_size):
                            params: List[Tuple[Any, ...]] = [_row_params(r) for r in batch]
                            cur.executemany(statement, params)
                            loaded += len(batch)
                            log.debug(
                                "Upserted batch",
                                extra={"table": self.table, "rows": loaded},
                            )
        except psycopg.Error as exc:
            log.error(
                f"[LOAD ROLLBACK] {self.table}",
                extra={"table": self.table, "attempted_rows": len(records)},
            )
            raise LoadError(
                f"Load into '{self.table}' failed and was rolled back: {exc}"
            ) from exc

        return loaded

    def close(self) -> None:
        if self._pool_instance is not None:
            try:
                self._pool_instance.close()
            finally:
                self._pool_instance = None


__all__ = ["PostgresLoader", "create_table_sql", "upsert_sql"]
