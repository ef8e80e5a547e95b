"""
Domain models for the sales ETL pipeline.

`SalesTransaction` is the validated shape of one extracted record and
`CleanTransaction` the normalized shape written to targets; both line up with
the `sales_transactions` table in `db/init.sql`.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SalesTransaction(BaseModel):
    """
    A single sales transaction that passed schema validation.
    """

    transaction_id: str = Field(..., min_length=1, description="Unique transaction key.")
    product: str = Field(..., min_length=1, description="Product name as sold.")
    amount: Decimal = Field(..., gt=0, description="Unit price; must be positive.")
    quantity: int = Field(1, ge=1, description="Units sold.")
    customer_id: str = Field(..., min_length=1, description="Purchasing customer.")
    transaction_date: date = Field(..., description="Day the sale happened.")
    region: Optional[str] = Field(None, description="Sales region, if known.")

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @field_validator("transaction_date", mode="before")
    @classmethod
    def _accept_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value.strip()) > 10:
            return datetime.fromisoformat(value.strip()).date()
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return 1
        return value

    @field_validator("region", mode="before")
    @classmethod
    def _blank_region(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CleanTransaction(SalesTransaction):
    """
    Normalized transaction ready for loading.
    """

    total_amount: Decimal = Field(..., description="amount * quantity, two decimals.")


class RejectedRecord(BaseModel):
    """
    A raw record that failed validation, with every reason it failed.
    """

    row_number: int = Field(..., ge=1, description="1-based position in the extracted stream.")
    reasons: List[str] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class DailySummary(BaseModel):
    transaction_date: date
    product: str
    transactions: int
    units: int
    revenue: Decimal

    model_config = ConfigDict(frozen=True)


class StageResult(TypedDict, total=False):
    """
    Metrics contract for one pipeline stage.

    Fields are optional so stages only report what they know; the orchestrator
    enriches the rest from profiler stats.
    """

    stage: str
    rows: int
    duration_seconds: float
    throughput_rows_per_sec: float
    peak_rss_bytes: Optional[int]
    cpu_percent: Optional[float]
    error: Optional[str]
    notes: Optional[str]
    extra: Dict[str, Any]


__all__ = [
    "SalesTransaction",
    "CleanTransaction",
    "RejectedRecord",
    "DailySummary",
    "StageResult",
]
