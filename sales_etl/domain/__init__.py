"""
Domain package for the sales ETL pipeline.

Exports the data definitions shared by every stage.
"""

from sales_etl.domain.models import (
    CleanTransaction,
    DailySummary,
    RejectedRecord,
    SalesTransaction,
    StageResult,
)

__all__ = [
    "CleanTransaction",
    "DailySummary",
    "RejectedRecord",
    "SalesTransaction",
    "StageResult",
]
