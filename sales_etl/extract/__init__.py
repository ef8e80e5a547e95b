"""
Extraction stage for the sales ETL pipeline.

Re-exports the extractor interfaces, the concrete extractors, and the registry
helpers so callers can import from `sales_etl.extract` directly.
"""

from sales_etl.extract.abstract import AbstractExtractor, Extractor, RawRecord
from sales_etl.extract.file_sources import CsvExtractor, JsonExtractor
from sales_etl.extract.postgres_source import PostgresExtractor
from sales_etl.extract.registry import (
    available_formats,
    extract_data,
    infer_format,
    resolve_extractor,
)

__all__ = [
    "AbstractExtractor",
    "Extractor",
    "RawRecord",
    "CsvExtractor",
    "JsonExtractor",
    "PostgresExtractor",
    "available_formats",
    "extract_data",
    "infer_format",
    "resolve_extractor",
]
