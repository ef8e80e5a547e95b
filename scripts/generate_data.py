"""
Synthetic sales data generator for the sales ETL pipeline.

Emits a deterministic (seeded) CSV of sales transactions, optionally with a
share of deliberately invalid rows to exercise validation, and can COPY the
file into a raw staging table for the postgres source.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from datetime import date, timedelta
from pathlib import Path

import psycopg
import typer
from psycopg import sql

from sales_etl.infrastructure.db_factory import build_dsn

app = typer.Typer(help="Generate synthetic sales transactions (CSV, optional COPY into Postgres).")

CSV_HEADER = [
    "transaction_id",
    "product",
    "amount",
    "quantity",
    "customer_id",
    "transaction_date",
    "region",
]
PRODUCTS = ["widget", "gadget pro", "  sprocket ", "gizmo", "doohickey xl"]
REGIONS = ["north", "south", "east", "west", ""]
DEFECTS = ["missing_customer", "non_positive_amount", "duplicate_id", "bad_date"]


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _generate_rows_csv(
    csv_path: Path,
    rows: int,
    batch_size: int,
    seed: int,
    invalid_ratio: float = 0.0,
    start_date: date = date(2024, 1, 1),
) -> int:
    """
    Write `rows` transactions to `csv_path` and return how many were made invalid.
    """
    rng = random.Random(seed)
    invalid = 0

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)

        buffer: list[list[str]] = []
        for i in range(rows):
            row = [
                f"T{i + 1:08d}",
                rng.choice(PRODUCTS),
                f"{rng.uniform(1, 500):.2f}",
                str(rng.randint(1, 5)),
                f"c{rng.randint(1, 5_000):05d}",
                (start_date + timedelta(days=rng.randint(0, 30))).isoformat(),
                rng.choice(REGIONS),
            ]
            if invalid_ratio and rng.random() < invalid_ratio:
                defect = rng.choice(DEFECTS)
                if defect == "duplicate_id" and i == 0:
                    defect = "missing_customer"
                if defect == "missing_customer":
                    row[4] = ""
                elif defect == "non_positive_amount":
                    row[2] = rng.choice(["0", "-12.50"])
                elif defect == "duplicate_id":
                    row[0] = f"T{rng.randint(1, i):08d}"
                else:
                    row[5] = "not-a-date"
                invalid += 1
            buffer.append(row)
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)

    return invalid


def _copy_into_db(dsn: str, csv_path: Path, table: str = "sales_raw") -> int:
    """COPY the CSV into an all-TEXT staging table; returns rows copied."""
    identifier = sql.Identifier(*table.split("."))
    columns = sql.SQL(", ").join(map(sql.Identifier, CSV_HEADER))
    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(
                sql.SQL("CREATE TABLE IF NOT EXISTS {} ({})").format(
                    identifier,
                    sql.SQL(", ").join(
                        sql.SQL("{} TEXT").format(sql.Identifier(c)) for c in CSV_HEADER
                    ),
                )
            )
            with cur.copy(
                sql.SQL("COPY {} ({}) FROM STDIN WITH (FORMAT csv, HEADER TRUE)").format(
                    identifier, columns
                )
            ) as copy:
                with csv_path.open("r", encoding="utf-8") as f:
                    for line in f:
                        copy.write(line)
            copied = cur.rowcount
        conn.commit()
    return copied


@app.command()
def main(
    rows: int = typer.Option(10_000, "--rows", "-r", help="Number of rows to generate."),
    batch_size: int = typer.Option(
        5_000, "--batch-size", "-b", help="Batch size for CSV buffering during generation."
    ),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    invalid_ratio: float = typer.Option(
        0.0, "--invalid-ratio", help="Share of rows to corrupt (0.0 - 1.0)."
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
    load: bool = typer.Option(
        False, "--load", help="COPY the generated CSV into a raw staging table."
    ),
    table: str = typer.Option("sales_raw", "--table", help="Staging table for --load."),
) -> None:
    """
    Generate synthetic sales data and optionally load it into Postgres using COPY.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="sales_etl_csv_"))
        csv_path = tmpdir / "sales.csv"

    typer.echo(
        f"Generating {rows:,} rows -> {csv_path} (invalid_ratio={invalid_ratio}, seed={seed})"
    )
    invalid = _generate_rows_csv(
        csv_path, rows=rows, batch_size=batch_size, seed=seed, invalid_ratio=invalid_ratio
    )
    gen_duration = time.perf_counter() - start
    typer.echo(f"CSV generation completed in {gen_duration:.2f}s ({invalid:,} invalid rows).")

    if not load:
        return

    typer.echo(f"Loading CSV into {table} via COPY...")
    copied = _copy_into_db(_build_dsn(dsn), csv_path, table=table)
    typer.echo(f"Copied {copied:,} rows in {time.perf_counter() - start:.2f}s total.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
