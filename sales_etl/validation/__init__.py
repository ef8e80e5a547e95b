"""
Validation stage for the sales ETL pipeline.
"""

from sales_etl.validation.rules import (
    REQUIRED_FIELDS,
    AllowedRegionsRule,
    RequiredFieldsRule,
    ValidationRule,
)
from sales_etl.validation.validator import (
    DUPLICATE_ID_REASON,
    ValidationReport,
    enforce_threshold,
    validate_records,
)

__all__ = [
    "REQUIRED_FIELDS",
    "AllowedRegionsRule",
    "RequiredFieldsRule",
    "ValidationRule",
    "DUPLICATE_ID_REASON",
    "ValidationReport",
    "enforce_threshold",
    "validate_records",
]
