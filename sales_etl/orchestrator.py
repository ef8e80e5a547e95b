"""
Orchestrator for running the ETL stages, profiling each one, and persisting run reports.

Usage (example from CLI):
    from sales_etl.orchestrator import RunConfig, run_pipeline

    report = run_pipeline(RunConfig(source="data/sales.csv", target="csv"))
    print(report["status"], report["counts"])

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>-<run_id>.json` (archive)
- `results/rejects-<timestamp>-<run_id>.jsonl` (rejected records, when there are any)

Failure policy:
- `strict`: the first failing stage aborts the run; the report is persisted
  and the stage error is re-raised.
- `tolerant`: the failing stage is recorded in the report, remaining stages
  are skipped, and the report is returned with status "failed".
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sales_etl.config import Settings, get_settings
from sales_etl.domain.models import CleanTransaction, DailySummary, StageResult
from sales_etl.errors import ConfigurationError
from sales_etl.extract.abstract import Extractor, RawRecord
from sales_etl.extract.registry import resolve_extractor
from sales_etl.load.abstract import Loader
from sales_etl.load.registry import resolve_loader
from sales_etl.transform import summarize_daily, transform_records
from sales_etl.utils.logging import get_logger
from sales_etl.utils.profiler import ProfileStats, profile_block
from sales_etl.validation.rules import ValidationRule
from sales_etl.validation.validator import ValidationReport, enforce_threshold, validate_records

log = get_logger(__name__)

FAILURE_POLICIES = ("strict", "tolerant")
STAGES = ("extract", "validate", "transform", "load")

StageFunc = Callable[[], Tuple[Any, StageResult]]


@dataclass
class RunConfig:
    """
    Options for one pipeline run. Unset values fall back to settings.
    """

    source: Optional[str] = None
    source_format: Optional[str] = None
    target: Optional[str] = None
    target_path: Optional[str] = None
    max_reject_ratio: Optional[float] = None
    failure_policy: Optional[str] = None
    rules: Sequence[ValidationRule] = ()
    dry_run: bool = False
    persist: bool = True
    results_dir: Optional[str | Path] = None

    def resolved(self, settings: Settings) -> "RunConfig":
        policy = (self.failure_policy or settings.etl_failure_policy).lower()
        if policy not in FAILURE_POLICIES:
            raise ConfigurationError(
                f"Unknown failure policy '{policy}'. Available: {', '.join(FAILURE_POLICIES)}"
            )
        max_ratio = (
            self.max_reject_ratio
            if self.max_reject_ratio is not None
            else settings.etl_max_reject_ratio
        )
        if not 0.0 <= max_ratio <= 1.0:
            raise ConfigurationError(f"max_reject_ratio must be within [0, 1], got {max_ratio}")
        return RunConfig(
            source=self.source or settings.etl_source_path,
            source_format=self.source_format or settings.etl_source_format,
            target=self.target or settings.etl_target,
            target_path=self.target_path,
            max_reject_ratio=max_ratio,
            failure_policy=policy,
            rules=self.rules,
            dry_run=self.dry_run,
            persist=self.persist,
            results_dir=self.results_dir or settings.etl_results_dir,
        )


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


def _merge_stage(result: StageResult, stats: ProfileStats) -> dict:
    """Merge a stage result with profiler stats; profiler timing always wins."""
    merged: Dict[str, Any] = dict(result)
    merged.setdefault("rows", 0)
    merged.setdefault("error", None)
    merged["duration_seconds"] = _round_float(stats.duration_seconds, 4)
    merged["throughput_rows_per_sec"] = (
        _round_float(merged["rows"] / stats.duration_seconds)
        if stats.duration_seconds > 0
        else 0.0
    )
    merged["peak_rss_bytes"] = stats.peak_rss_bytes
    merged["peak_traced_bytes"] = stats.peak_traced_bytes
    merged["cpu_percent"] = (
        _round_float(stats.cpu_percent, 1) if stats.cpu_percent is not None else None
    )
    return merged


def _failed_result(exc: BaseException, failure_policy: str) -> StageResult:
    return StageResult(
        rows=0,
        error=str(exc),
        notes="Stage failed; remaining stages skipped.",
        extra={
            "failed": True,
            "error_type": type(exc).__name__,
            "failure_policy": failure_policy,
        },
    )


def _profiled_stage(
    name: str, func: StageFunc, failure_policy: str
) -> Tuple[Any, dict, Optional[Exception]]:
    log.info(f"[STAGE START] {name}", extra={"stage": name})
    output: Any = None
    error: Optional[Exception] = None
    with profile_block(name) as stats:
        try:
            output, result = func()
            log.info(
                f"[STAGE SUCCESS] {name}",
                extra={"stage": name, "rows": result.get("rows", 0)},
            )
        except Exception as exc:  # noqa: BLE001 - the failure policy decides what happens next
            log.exception(
                f"[STAGE FAILED] {name}",
                extra={"stage": name, "error_type": type(exc).__name__},
            )
            error = exc
            result = _failed_result(exc, failure_policy)

    merged = _merge_stage(result, stats)
    merged["stage"] = name
    return output, merged, error


def _persist_results(
    payload: dict, results_dir: Path, rejected: Sequence[Any] = ()
) -> Dict[str, str]:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    stem = f"{timestamp}-{payload['run_id']}"
    archive_path = results_dir / f"run-{stem}.json"

    with latest_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=str)
    with archive_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=str)

    paths = {"latest": str(latest_path), "archive": str(archive_path)}
    if rejected:
        rejects_path = results_dir / f"rejects-{stem}.jsonl"
        with rejects_path.open("w", encoding="utf-8") as f:
            for record in rejected:
                f.write(json.dumps(record.model_dump(mode="json"), default=str))
                f.write("\n")
        paths["rejects"] = str(rejects_path)

    log.info("Results persisted", extra=paths)
    return paths


class _PipelineRun:
    """State carried between the stages of one run."""

    def __init__(self, config: RunConfig, extractor: Extractor, loader: Optional[Loader]) -> None:
        self.config = config
        self.extractor = extractor
        self.loader = loader
        self.raw: List[RawRecord] = []
        self.validation: Optional[ValidationReport] = None
        self.clean: List[CleanTransaction] = []
        self.summary: List[DailySummary] = []
        self.loaded = 0

    def extract(self) -> Tuple[Any, StageResult]:
        self.raw = list(self.extractor.extract())
        return self.raw, StageResult(
            rows=len(self.raw), notes=f"{self.extractor.name} source {self.config.source}"
        )

    def validate(self) -> Tuple[Any, StageResult]:
        self.validation = validate_records(self.raw, rules=self.config.rules)
        enforce_threshold(self.validation, self.config.max_reject_ratio or 0.0)
        return self.validation, StageResult(
            rows=self.validation.total,
            extra={
                "valid": len(self.validation.valid),
                "rejected": len(self.validation.rejected),
                "reject_ratio": _round_float(self.validation.reject_ratio, 4),
            },
        )

    def transform(self) -> Tuple[Any, StageResult]:
        valid = self.validation.valid if self.validation is not None else []
        self.clean = transform_records(valid)
        self.summary = summarize_daily(self.clean)
        return self.clean, StageResult(
            rows=len(self.clean), extra={"summary_rows": len(self.summary)}
        )

    def load(self, loader: Loader) -> Tuple[Any, StageResult]:
        self.loaded = loader.load(self.clean)
        return self.loaded, StageResult(rows=self.loaded, notes=f"{loader.name} target")

    def stage_funcs(self) -> List[Tuple[str, StageFunc]]:
        funcs: List[Tuple[str, StageFunc]] = [
            ("extract", self.extract),
            ("validate", self.validate),
            ("transform", self.transform),
        ]
        if self.loader is not None:
            funcs.append(("load", partial(self.load, self.loader)))
        return funcs

    def counts(self) -> Dict[str, int]:
        return {
            "extracted": len(self.raw),
            "valid": len(self.validation.valid) if self.validation else 0,
            "rejected": len(self.validation.rejected) if self.validation else 0,
            "loaded": self.loaded,
        }


def _close_quietly(resource: Any, label: str) -> None:
    close = getattr(resource, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception:  # noqa: BLE001 - a close failure must not mask the run outcome
        log.warning(f"Failed to close {label}", exc_info=True)


def run_pipeline(config: Optional[RunConfig] = None) -> dict:
    """
    Run extract -> validate -> transform -> load and return the run report.

    Parameters
    ----------
    config : RunConfig | None
        Run options; unset values fall back to settings.

    Returns
    -------
    dict
        Report with `status`, per-stage results, counts, reject reasons and
        the daily summary.

    Raises
    ------
    ConfigurationError
        Unknown target or failure policy, or an out-of-range reject ratio.
    UnsupportedFormatError
        The source format cannot be resolved.
    EtlError
        Under the strict policy, the error of the first failing stage.
    """
    cfg = (config or RunConfig()).resolved(get_settings())
    run_id = uuid.uuid4().hex[:12]
    if not cfg.source or not cfg.target:
        raise ConfigurationError("Both a source and a target must be configured")

    extractor = resolve_extractor(cfg.source, cfg.source_format)
    try:
        loader = None if cfg.dry_run else resolve_loader(cfg.target, cfg.target_path)
    except Exception:
        _close_quietly(extractor, "extractor")
        raise
    run = _PipelineRun(cfg, extractor, loader)

    log.info(f"{'=' * 60}")
    log.info(
        f"[PIPELINE START] {run_id}",
        extra={
            "run_id": run_id,
            "source": cfg.source,
            "target": cfg.target,
            "dry_run": cfg.dry_run,
            "failure_policy": cfg.failure_policy,
        },
    )

    stages: List[dict] = []
    first_error: Optional[Exception] = None
    try:
        for name, func in run.stage_funcs():
            _, stage_result, error = _profiled_stage(name, func, cfg.failure_policy or "strict")
            stages.append(stage_result)
            if error is not None:
                first_error = error
                break
    finally:
        _close_quietly(extractor, "extractor")
        if loader is not None:
            _close_quietly(loader, "loader")

    status = "failed" if first_error is not None else "succeeded"
    payload = {
        "run_id": run_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status,
        "source": cfg.source,
        "source_format": extractor.name,
        "target": None if cfg.dry_run else cfg.target,
        "dry_run": cfg.dry_run,
        "failure_policy": cfg.failure_policy,
        "max_reject_ratio": cfg.max_reject_ratio,
        "stages": stages,
        "counts": run.counts(),
        "reject_reasons": run.validation.reason_counts if run.validation else {},
        "daily_summary": [s.model_dump(mode="json") for s in run.summary],
    }

    if cfg.persist:
        rejected = run.validation.rejected if run.validation else []
        results_dir = Path(cfg.results_dir or "results")
        payload["artifacts"] = _persist_results(payload, results_dir, rejected)

    log.info(
        f"[PIPELINE COMPLETE] {run_id} status={status}",
        extra={"run_id": run_id, "status": status, **run.counts()},
    )

    if first_error is not None and cfg.failure_policy == "strict":
        raise first_error
    return payload


__all__ = [
    "FAILURE_POLICIES",
    "STAGES",
    "RunConfig",
    "run_pipeline",
]
