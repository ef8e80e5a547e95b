"""
Pytest configuration for the sales ETL pipeline.

Provides fixtures for:
- Settings isolation (cache reset, temp results/output dirs)
- Sample raw records and source files
- Database connection management for integration tests
"""

from __future__ import annotations

import csv
import json
import os
from pathlib import Path
from typing import Any, Dict, Generator, List

import psycopg
import pytest

from sales_etl.config import Settings, get_settings

SAMPLE_HEADER = [
    "transaction_id",
    "product",
    "amount",
    "quantity",
    "customer_id",
    "transaction_date",
    "region",
]

# 4 valid rows, then: null customer, non-positive amount, duplicate id.
SAMPLE_ROWS: List[List[str]] = [
    ["T1", "  widget ", "10.005", "2", "c001", "2024-01-01", "north"],
    ["T2", "gadget   pro", "5.5", "", "c002", "2024-01-01", ""],
    ["T3", "widget", "20", "1", "c003", "2024-01-02T09:30:00", "south"],
    ["T4", "Gizmo", "7.25", "4", "c001", "2024-01-02", "east"],
    ["T5", "widget", "3.00", "1", "", "2024-01-03", "west"],
    ["T6", "widget", "0", "1", "c004", "2024-01-03", "west"],
    ["T1", "widget", "10.00", "1", "c005", "2024-01-03", "north"],
]
SAMPLE_VALID = 4
SAMPLE_REJECTED = 3


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Settings:
    """
    Point every file-system default at `tmp_path` and return fresh settings.
    """
    monkeypatch.setenv("ETL_RESULTS_DIR", str(tmp_path / "results"))
    monkeypatch.setenv("ETL_TARGET_PATH", str(tmp_path / "output" / "clean.csv"))
    monkeypatch.setenv("ETL_TARGET", "csv")
    monkeypatch.setenv("ETL_FAILURE_POLICY", "strict")
    monkeypatch.setenv("ETL_MAX_REJECT_RATIO", "0.5")
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def raw_records() -> List[Dict[str, Any]]:
    return [
        {key: (value or None) for key, value in zip(SAMPLE_HEADER, row)} for row in SAMPLE_ROWS
    ]


@pytest.fixture
def sales_csv(tmp_path: Path) -> Path:
    path = tmp_path / "sales.csv"
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(SAMPLE_HEADER)
        writer.writerows(SAMPLE_ROWS)
    return path


@pytest.fixture
def sales_jsonl(tmp_path: Path, raw_records: List[Dict[str, Any]]) -> Path:
    path = tmp_path / "sales.jsonl"
    with path.open("w", encoding="utf-8") as f:
        for record in raw_records:
            f.write(json.dumps(record) + "\n")
    return path


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "sales_etl"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Apply db/init.sql (idempotent).
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


@pytest.fixture
def clean_sales_tables(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the target and staging tables before and after each test.
    """
    truncate = "TRUNCATE TABLE public.sales_transactions, public.sales_raw;"
    with db_connection.cursor() as cur:
        cur.execute(truncate)
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute(truncate)
    db_connection.commit()
