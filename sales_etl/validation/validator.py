"""
Validation stage: split raw records into valid transactions and rejects.

Each record goes through, in order:
1. raw-record rules (required fields are present and non-blank, plus any
   caller-supplied rules),
2. schema coercion into `SalesTransaction` (types, amount > 0, quantity >= 1),
3. the duplicate check on `transaction_id`: every occurrence after the first
   is rejected, whether or not the first one was valid.

Every reason a record fails is kept so a reject report can show all of them
at once.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from pydantic import ValidationError

from sales_etl.domain.models import RejectedRecord, SalesTransaction
from sales_etl.errors import ValidationThresholdError
from sales_etl.extract.abstract import RawRecord
from sales_etl.utils.logging import get_logger
from sales_etl.validation.rules import RequiredFieldsRule, ValidationRule

log = get_logger(__name__)

DUPLICATE_ID_REASON = "transaction_id: duplicate value"


@dataclass
class ValidationReport:
    valid: List[SalesTransaction] = field(default_factory=list)
    rejected: List[RejectedRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.rejected)

    @property
    def reject_ratio(self) -> float:
        return len(self.rejected) / self.total if self.total else 0.0

    @property
    def reason_counts(self) -> Dict[str, int]:
        """Reason -> number of records rejected for it, most common first."""
        counts = Counter(reason for record in self.rejected for reason in record.reasons)
        return dict(counts.most_common())


def _schema_reasons(exc: ValidationError, already_reported: Set[str]) -> List[str]:
    reasons: List[str] = []
    for error in exc.errors():
        field_name = ".".join(str(part) for part in error["loc"]) or "record"
        if field_name in already_reported:
            continue
        reasons.append(f"{field_name}: {error['msg']}")
    return reasons


def _raw_transaction_id(raw: RawRecord) -> Optional[str]:
    value = raw.get("transaction_id")
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def enforce_threshold(report: ValidationReport, max_reject_ratio: float) -> None:
    """
    Raise if the report rejected more than `max_reject_ratio` of its records.

    An empty report never raises.
    """
    if report.total and report.reject_ratio > max_reject_ratio:
        raise ValidationThresholdError(
            rejected=len(report.rejected),
            total=report.total,
            max_ratio=max_reject_ratio,
        )


def validate_records(
    records: Iterable[RawRecord],
    rules: Optional[Sequence[ValidationRule]] = None,
    max_reject_ratio: Optional[float] = None,
) -> ValidationReport:
    """
    Validate raw records.

    Parameters
    ----------
    records : iterable of dict
        Raw records in source order; row numbers are assigned from 1.
    rules : sequence of ValidationRule | None
        Extra raw-record rules, run after the required-fields rule.
    max_reject_ratio : float | None
        When given, raise `ValidationThresholdError` if the reject ratio
        exceeds it.

    Returns
    -------
    ValidationReport
        Valid transactions and rejected records, both in source order.
    """
    active_rules: List[ValidationRule] = [RequiredFieldsRule(), *(rules or [])]
    report = ValidationReport()
    seen_ids: Set[str] = set()

    for row_number, raw in enumerate(records, start=1):
        reasons: List[str] = []
        for rule in active_rules:
            reasons.extend(rule.check(raw))

        reported_fields = {reason.split(":", 1)[0] for reason in reasons}
        txn: Optional[SalesTransaction] = None
        try:
            txn = SalesTransaction.model_validate(raw)
        except ValidationError as exc:
            reasons.extend(_schema_reasons(exc, reported_fields))

        transaction_id = _raw_transaction_id(raw)
        if transaction_id is not None:
            if transaction_id in seen_ids:
                reasons.append(DUPLICATE_ID_REASON)
            seen_ids.add(transaction_id)

        if reasons or txn is None:
            report.rejected.append(
                RejectedRecord(row_number=row_number, reasons=reasons, raw=dict(raw))
            )
            log.debug(
                f"Rejected row {row_number}",
                extra={"row_number": row_number, "reasons": reasons},
            )
            continue

        report.valid.append(txn)

    log.info(
        "[VALIDATION] Completed",
        extra={
            "total": report.total,
            "valid": len(report.valid),
            "rejected": len(report.rejected),
            "reject_ratio": round(report.reject_ratio, 4),
        },
    )

    if max_reject_ratio is not None:
        enforce_threshold(report, max_reject_ratio)
    return report


__all__ = [
    "DUPLICATE_ID_REASON",
    "ValidationReport",
    "enforce_threshold",
    "validate_records",
]
