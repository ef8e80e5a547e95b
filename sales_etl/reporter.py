from __future__ import annotations

from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

TOP_REASONS = 5


def _format_mb(value: Optional[int]) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f}"


def print_report(report: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Render a pipeline run report as a rich table.

    Shows one row per executed stage, then the record counts and the most
    common reject reasons.
    """
    console = console or Console()
    stages = report.get("stages") or []

    if not stages:
        console.print("[yellow]No stages were executed.[/yellow]")
        return

    status = report.get("status", "unknown")
    status_style = "green" if status == "succeeded" else "red"
    title = (
        f"Sales ETL Run {report.get('run_id', '')} "
        f"[{status_style}]{status.upper()}[/{status_style}]"
    )
    if report.get("dry_run"):
        title += " [dim](dry run)[/dim]"

    source = escape(str(report.get("source")))
    table = Table(title=title, box=box.ROUNDED, caption=f"Source: {source}")
    table.add_column("Stage", style="cyan", no_wrap=True)
    table.add_column("Rows", justify="right", style="magenta")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Throughput (rows/s)", justify="right", style="bold green")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")
    table.add_column("CPU %", justify="right", style="red")
    table.add_column("Status", justify="left")

    for stage in stages:
        cpu = stage.get("cpu_percent")
        error = stage.get("error")
        table.add_row(
            stage.get("stage", "?"),
            f"{stage.get('rows', 0):,}",
            f"{stage.get('duration_seconds', 0.0):.3f}",
            f"{stage.get('throughput_rows_per_sec', 0.0):,.2f}",
            _format_mb(stage.get("peak_rss_bytes")),
            f"{cpu:.1f}" if cpu is not None else "N/A",
            f"[red]failed: {escape(str(error))}[/red]" if error else "[green]ok[/green]",
        )

    console.print(table)

    counts = report.get("counts") or {}
    console.print(
        "extracted={extracted:,} valid={valid:,} rejected={rejected:,} loaded={loaded:,}".format(
            extracted=counts.get("extracted", 0),
            valid=counts.get("valid", 0),
            rejected=counts.get("rejected", 0),
            loaded=counts.get("loaded", 0),
        )
    )

    reasons = report.get("reject_reasons") or {}
    if reasons:
        reasons_table = Table(title="Top reject reasons", box=box.SIMPLE)
        reasons_table.add_column("Reason", style="yellow")
        reasons_table.add_column("Records", justify="right")
        for reason, count in list(reasons.items())[:TOP_REASONS]:
            reasons_table.add_row(escape(reason), f"{count:,}")
        console.print(reasons_table)


__all__ = ["print_report"]
