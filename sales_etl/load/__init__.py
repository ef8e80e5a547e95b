"""
Loading stage for the sales ETL pipeline.
"""

from sales_etl.load.abstract import LOAD_COLUMNS, AbstractLoader, Loader, record_to_row
from sales_etl.load.file_targets import CsvFileLoader, JsonLinesFileLoader
from sales_etl.load.postgres_target import PostgresLoader
from sales_etl.load.registry import available_targets, resolve_loader

__all__ = [
    "LOAD_COLUMNS",
    "AbstractLoader",
    "Loader",
    "record_to_row",
    "CsvFileLoader",
    "JsonLinesFileLoader",
    "PostgresLoader",
    "available_targets",
    "resolve_loader",
]
