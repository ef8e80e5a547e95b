"""
Sales ETL - batch pipeline for sales transaction data.

Stages:

- Extract: CSV, JSON / JSON Lines files, or a Postgres table
- Validate: required fields, schema and business rules (amount > 0), duplicates
- Transform: normalization and daily per-product summaries
- Load: Postgres upsert in one transaction, or atomically replaced files

The orchestrator runs the stages in order, profiles each one, applies a
strict or tolerant failure policy, and persists a JSON run report.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from sales_etl.config import Settings, get_settings
from sales_etl.errors import (
    EtlError,
    ExtractionError,
    LoadError,
    SourceNotFoundError,
    ValidationThresholdError,
)
from sales_etl.extract import extract_data
from sales_etl.orchestrator import RunConfig, run_pipeline
from sales_etl.utils.logging import configure_logging, get_logger
from sales_etl.validation import validate_records

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "EtlError",
    "ExtractionError",
    "LoadError",
    "SourceNotFoundError",
    "ValidationThresholdError",
    # Pipeline
    "RunConfig",
    "extract_data",
    "run_pipeline",
    "validate_records",
    # Logging
    "configure_logging",
    "get_logger",
]
