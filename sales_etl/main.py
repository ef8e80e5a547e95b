from __future__ import annotations

import json
import sys
from typing import Optional

import typer
from rich.console import Console

from sales_etl.config import get_settings
from sales_etl.errors import EtlError, ValidationThresholdError
from sales_etl.extract import available_formats, extract_data
from sales_etl.load import available_targets
from sales_etl.orchestrator import FAILURE_POLICIES, RunConfig, run_pipeline
from sales_etl.reporter import print_report
from sales_etl.utils.logging import configure_logging
from sales_etl.validation import enforce_threshold, validate_records

app = typer.Typer(help="Sales ETL pipeline CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"source={settings.etl_source_path} target={settings.etl_target} "
        f"table={settings.etl_table} batch={settings.etl_batch_size} "
        f"max_reject_ratio={settings.etl_max_reject_ratio} policy={settings.etl_failure_policy}"
    )


@app.command()
def formats() -> None:
    """
    List supported source formats and load targets.
    """
    typer.echo("Source formats: " + ", ".join(available_formats()))
    typer.echo("Load targets: " + ", ".join(available_targets()))


@app.command()
def validate(
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="Source file (or table for --format postgres)."
    ),
    fmt: Optional[str] = typer.Option(
        None, "--format", "-f", help="Source format; inferred from the suffix when omitted."
    ),
    max_reject_ratio: Optional[float] = typer.Option(
        None, "--max-reject-ratio", help="Fail when more than this share of records is rejected."
    ),
) -> None:
    """
    Extract and validate only; print the reject summary without loading anything.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    max_ratio = max_reject_ratio if max_reject_ratio is not None else settings.etl_max_reject_ratio

    try:
        records = extract_data(
            source or settings.etl_source_path, fmt or settings.etl_source_format
        )
    except EtlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    report = validate_records(records)
    typer.echo(
        f"total={report.total} valid={len(report.valid)} rejected={len(report.rejected)} "
        f"reject_ratio={report.reject_ratio:.2%}"
    )
    for reason, count in report.reason_counts.items():
        typer.echo(f"  {count:>6}  {reason}")

    try:
        enforce_threshold(report, max_ratio)
    except ValidationThresholdError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def run(
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="Source file (or table for --format postgres)."
    ),
    fmt: Optional[str] = typer.Option(
        None, "--format", "-f", help="Source format (csv, json, postgres)."
    ),
    target: Optional[str] = typer.Option(
        None, "--target", "-t", help="Load target (postgres, csv, jsonl)."
    ),
    target_path: Optional[str] = typer.Option(
        None, "--target-path", help="Output file for file targets, table name for postgres."
    ),
    policy: Optional[str] = typer.Option(
        None, "--policy", help=f"Failure policy ({', '.join(FAILURE_POLICIES)})."
    ),
    max_reject_ratio: Optional[float] = typer.Option(
        None, "--max-reject-ratio", help="Fail when more than this share of records is rejected."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Skip the load stage."),
    no_persist: bool = typer.Option(False, "--no-persist", help="Do not write run reports."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON."),
    as_json: bool = typer.Option(False, "--json", help="Print the run report as JSON."),
) -> None:
    """
    Run the full pipeline and persist the run report.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=json_logs or settings.log_json)

    config = RunConfig(
        source=source,
        source_format=fmt,
        target=target,
        target_path=target_path,
        max_reject_ratio=max_reject_ratio,
        failure_policy=policy,
        dry_run=dry_run,
        persist=not no_persist,
    )
    try:
        report = run_pipeline(config)
    except EtlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(report, indent=2, default=str))
    else:
        print_report(report, console=Console())

    if report["status"] != "succeeded":
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
