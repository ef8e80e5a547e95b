from __future__ import annotations

import csv
import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List

import psycopg
import pytest

from sales_etl.errors import ConfigurationError, LoadError
from sales_etl.load import (
    LOAD_COLUMNS,
    CsvFileLoader,
    JsonLinesFileLoader,
    PostgresLoader,
    record_to_row,
    resolve_loader,
)
from sales_etl.load import postgres_target as postgres_target_module
from sales_etl.transform import transform_records
from sales_etl.validation import validate_records


@pytest.fixture
def clean_records(raw_records: List[Dict[str, Any]]):
    return transform_records(validate_records(raw_records).valid)


def test_record_to_row_is_json_safe(clean_records) -> None:
    row = record_to_row(clean_records[0])

    assert tuple(row) == LOAD_COLUMNS
    assert row["amount"] == "10.01"
    assert row["total_amount"] == "20.02"
    assert row["transaction_date"] == "2024-01-01"


def test_csv_loader_writes_header_and_rows(tmp_path: Path, clean_records) -> None:
    target = tmp_path / "nested" / "out.csv"

    written = CsvFileLoader(target).load(clean_records)

    assert written == len(clean_records)
    with target.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["transaction_id"] for r in rows] == ["T1", "T2", "T3", "T4"]
    assert rows[1]["region"] == ""
    assert list(rows[0]) == list(LOAD_COLUMNS)


def test_jsonl_loader_writes_one_object_per_line(tmp_path: Path, clean_records) -> None:
    target = tmp_path / "out.jsonl"

    JsonLinesFileLoader(target).load(clean_records)

    lines = target.read_text(encoding="utf-8").splitlines()
    assert len(lines) == len(clean_records)
    assert json.loads(lines[1])["region"] is None


def test_file_loader_replaces_previous_contents(tmp_path: Path, clean_records) -> None:
    target = tmp_path / "out.jsonl"
    target.write_text("stale\n", encoding="utf-8")

    JsonLinesFileLoader(target).load(clean_records[:1])

    assert target.read_text(encoding="utf-8").count("\n") == 1
    assert "stale" not in target.read_text(encoding="utf-8")


def test_file_loader_failure_keeps_previous_contents(
    tmp_path: Path, clean_records, monkeypatch
) -> None:
    target = tmp_path / "out.csv"
    target.write_text("previous\n", encoding="utf-8")
    loader = CsvFileLoader(target)

    def broken_write(handle, records):
        handle.write("partial")
        raise OSError("disk full")

    monkeypatch.setattr(loader, "_write", broken_write)

    with pytest.raises(LoadError, match="previous contents kept"):
        loader.load(clean_records)

    assert target.read_text(encoding="utf-8") == "previous\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out.csv"]


def test_file_loader_cleans_up_on_unexpected_error(
    tmp_path: Path, clean_records, monkeypatch
) -> None:
    target = tmp_path / "out.csv"
    loader = CsvFileLoader(target)

    def broken_write(handle, records):
        raise KeyError("column")

    monkeypatch.setattr(loader, "_write", broken_write)

    with pytest.raises(KeyError):
        loader.load(clean_records)

    assert list(tmp_path.iterdir()) == []


def test_resolve_loader_uses_target_path_and_defaults(isolated_settings, tmp_path: Path) -> None:
    csv_loader = resolve_loader("CSV")
    assert isinstance(csv_loader, CsvFileLoader)
    assert csv_loader.path == Path(isolated_settings.etl_target_path)

    jsonl_loader = resolve_loader("jsonl", str(tmp_path / "x.jsonl"))
    assert isinstance(jsonl_loader, JsonLinesFileLoader)
    assert jsonl_loader.path == tmp_path / "x.jsonl"

    pg_loader = resolve_loader("postgres", "staging.sales")
    assert isinstance(pg_loader, PostgresLoader)
    assert pg_loader.table == "staging.sales"

    with pytest.raises(ConfigurationError, match="Unknown target"):
        resolve_loader("parquet")


# ---------------------------------------------------------------------------
# Postgres target (fakes, no database)
# ---------------------------------------------------------------------------


class _FakeCursor:
    def __init__(self, fail_on_batch: int | None = None) -> None:
        self.executed: List[Any] = []
        self.batches: List[List[Any]] = []
        self._fail_on_batch = fail_on_batch

    def execute(self, query: Any, params: Any = None) -> None:
        del params
        self.executed.append(query)

    def executemany(self, query: Any, params: List[Any]) -> None:
        del query
        if self._fail_on_batch is not None and len(self.batches) == self._fail_on_batch:
            raise psycopg.DataError("value out of range")
        self.batches.append(list(params))

    def __enter__(self) -> _FakeCursor:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False


class _FakeConnection:
    def __init__(self, cursor: _FakeCursor) -> None:
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False

    @contextmanager
    def transaction(self):
        try:
            yield
        except BaseException:
            self.rolled_back = True
            raise
        else:
            self.committed = True

    def cursor(self) -> _FakeCursor:
        return self._cursor


class _FakePool:
    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn
        self.closed = False

    @contextmanager
    def connection(self):
        yield self._conn

    def close(self) -> None:
        self.closed = True


def _install_pool(monkeypatch, cursor: _FakeCursor) -> Dict[str, Any]:
    created: Dict[str, Any] = {"calls": 0}

    def fake_create_sync_pool(min_size: int, max_size: int, dsn_override: Any = None):
        created["calls"] += 1
        created["sizes"] = (min_size, max_size)
        created["conn"] = _FakeConnection(cursor)
        created["pool"] = _FakePool(created["conn"])
        return created["pool"]

    monkeypatch.setattr(postgres_target_module, "create_sync_pool", fake_create_sync_pool)
    return created


def test_postgres_loader_upserts_in_batches_and_commits(monkeypatch, clean_records) -> None:
    cursor = _FakeCursor()
    created = _install_pool(monkeypatch, cursor)
    loader = PostgresLoader(table="public.sales_transactions", batch_size=3)

    loaded = loader.load(clean_records)

    assert loaded == len(clean_records)
    assert [len(batch) for batch in cursor.batches] == [3, 1]
    assert cursor.batches[0][0][0] == "T1"
    assert len(cursor.batches[0][0]) == len(LOAD_COLUMNS)
    assert len(cursor.executed) == 1  # CREATE TABLE IF NOT EXISTS
    assert created["conn"].committed is True
    assert created["sizes"] == (1, 4)

    loader.load(clean_records[:1])
    assert created["calls"] == 1

    loader.close()
    assert created["pool"].closed is True


def test_postgres_loader_rolls_back_and_raises_load_error(monkeypatch, clean_records) -> None:
    cursor = _FakeCursor(fail_on_batch=1)
    created = _install_pool(monkeypatch, cursor)
    loader = PostgresLoader(table="sales_transactions", batch_size=2, create_table=False)

    with pytest.raises(LoadError, match="rolled back") as excinfo:
        loader.load(clean_records)

    assert isinstance(excinfo.value.__cause__, psycopg.DataError)
    assert created["conn"].rolled_back is True
    assert created["conn"].committed is False
    assert cursor.executed == []


def test_postgres_loader_applies_statement_timeout(monkeypatch, clean_records) -> None:
    monkeypatch.setenv("DB_STATEMENT_TIMEOUT_MS", "1500")
    cursor = _FakeCursor()
    _install_pool(monkeypatch, cursor)

    PostgresLoader(create_table=False).load(clean_records)

    assert cursor.executed == ["SET LOCAL statement_timeout = 1500"]


def test_postgres_loader_close_without_load_is_noop() -> None:
    PostgresLoader().close()


def test_upsert_sql_targets_every_column() -> None:
    statement = postgres_target_module.upsert_sql("public.sales_transactions")
    rendered = repr(statement)

    for column in LOAD_COLUMNS:
        assert column in rendered
    assert "ON CONFLICT" in rendered
