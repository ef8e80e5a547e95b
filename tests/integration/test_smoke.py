"""
Integration tests for the sales ETL pipeline against PostgreSQL.

These tests run against a real PostgreSQL instance and verify that:
1. The Postgres loader upserts clean transactions and is idempotent
2. A failed load rolls back and leaves the table as it was
3. The Postgres extractor streams a staging table through the full pipeline

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from sales_etl.domain.models import CleanTransaction
from sales_etl.errors import LoadError
from sales_etl.extract import PostgresExtractor
from sales_etl.load import PostgresLoader
from sales_etl.orchestrator import RunConfig, run_pipeline
from sales_etl.transform import transform_records
from sales_etl.validation import validate_records
from scripts import generate_data

DEFAULT_ROWS = 40
DEFAULT_BATCH_SIZE = 7
DEFAULT_SEED = 123
SAMPLE_VALID = 4

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


def _count(db_connection, table: str = "public.sales_transactions") -> int:
    with db_connection.cursor() as cur:
        cur.execute(f"SELECT count(*) FROM {table}")
        (count,) = cur.fetchone()
    db_connection.commit()
    return count


@pytest.fixture
def clean_records(raw_records):
    return transform_records(validate_records(raw_records).valid)


@pytest.mark.usefixtures("clean_sales_tables")
class TestPostgresLoader:
    def test_load_inserts_rows(self, db_connection, test_dsn, clean_records):
        loader = PostgresLoader(table="public.sales_transactions", dsn_override=test_dsn)
        try:
            loaded = loader.load(clean_records)
        finally:
            loader.close()

        assert loaded == SAMPLE_VALID
        assert _count(db_connection) == SAMPLE_VALID

        with db_connection.cursor() as cur:
            cur.execute(
                "SELECT total_amount, region FROM public.sales_transactions "
                "WHERE transaction_id = 'T1'"
            )
            total, region = cur.fetchone()
        db_connection.commit()
        assert total == Decimal("20.02")
        assert region == "North"

    def test_reload_is_idempotent(self, db_connection, test_dsn, clean_records):
        loader = PostgresLoader(
            table="public.sales_transactions", batch_size=2, dsn_override=test_dsn
        )
        try:
            loader.load(clean_records)
            loader.load(clean_records)
        finally:
            loader.close()

        assert _count(db_connection) == SAMPLE_VALID

    def test_failed_load_rolls_back(self, db_connection, test_dsn, clean_records):
        loader = PostgresLoader(
            table="public.sales_transactions", batch_size=1, dsn_override=test_dsn
        )
        bad = CleanTransaction.model_construct(
            transaction_id="BAD",
            product="Widget",
            amount=Decimal("-1.00"),
            quantity=1,
            total_amount=Decimal("-1.00"),
            customer_id="C999",
            transaction_date=date(2024, 1, 5),
            region=None,
        )
        try:
            loader.load(clean_records[:1])
            with pytest.raises(LoadError, match="rolled back"):
                loader.load(clean_records[1:] + [bad])
        finally:
            loader.close()

        assert _count(db_connection) == 1


@pytest.mark.usefixtures("clean_sales_tables")
class TestPipelineFromPostgres:
    def test_extract_staging_table_and_load(self, db_connection, test_dsn, tmp_path: Path):
        csv_path = tmp_path / "sales.csv"
        generate_data._generate_rows_csv(
            csv_path, rows=DEFAULT_ROWS, batch_size=DEFAULT_BATCH_SIZE, seed=DEFAULT_SEED
        )
        generate_data._copy_into_db(test_dsn, csv_path, table="public.sales_raw")
        assert _count(db_connection, "public.sales_raw") == DEFAULT_ROWS

        extractor = PostgresExtractor(table="public.sales_raw", batch_size=9, dsn_override=test_dsn)
        rows = list(extractor.extract())
        assert len(rows) == DEFAULT_ROWS

        report = run_pipeline(
            RunConfig(
                source="public.sales_raw",
                source_format="postgres",
                target="postgres",
                target_path="public.sales_transactions",
                results_dir=tmp_path / "results",
                max_reject_ratio=0.0,
            )
        )

        assert report["status"] == "succeeded"
        assert report["counts"]["extracted"] == DEFAULT_ROWS
        assert report["counts"]["loaded"] == DEFAULT_ROWS
        assert _count(db_connection) == DEFAULT_ROWS
