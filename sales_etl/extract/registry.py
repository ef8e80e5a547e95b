"""
Extractor registry and the `extract_data` convenience entry point.

Usage:
    from sales_etl.extract import extract_data

    records = extract_data("data/sales.csv")
    records = extract_data("public.sales_raw", fmt="postgres")
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from sales_etl.errors import UnsupportedFormatError
from sales_etl.extract.abstract import Extractor, RawRecord
from sales_etl.extract.file_sources import JSON_LINES_SUFFIXES, CsvExtractor, JsonExtractor
from sales_etl.extract.postgres_source import PostgresExtractor

_SUFFIX_FORMATS: Dict[str, str] = {
    ".csv": "csv",
    ".json": "json",
    **{suffix: "json" for suffix in JSON_LINES_SUFFIXES},
}


def _extractor_factories() -> Dict[str, Callable[[str], Extractor]]:
    """Registry of available extractors, keyed by format name."""
    return {
        "csv": lambda source: CsvExtractor(source),
        "json": lambda source: JsonExtractor(source),
        "postgres": lambda source: PostgresExtractor(table=source),
    }


def available_formats() -> List[str]:
    """List available source format names."""
    return sorted(_extractor_factories().keys())


def infer_format(source: Union[str, Path]) -> str:
    """
    Infer the source format from the file suffix.

    Raises
    ------
    UnsupportedFormatError
        If the suffix maps to no known format.
    """
    suffix = Path(source).suffix.lower()
    if suffix not in _SUFFIX_FORMATS:
        raise UnsupportedFormatError(suffix or str(source), available_formats())
    return _SUFFIX_FORMATS[suffix]


def resolve_extractor(source: Union[str, Path], fmt: Optional[str] = None) -> Extractor:
    """
    Build the extractor for a source.

    Parameters
    ----------
    source : str | Path
        A file path, or a table name when `fmt` is "postgres".
    fmt : str | None
        Explicit format name; inferred from the file suffix when omitted.
    """
    name = (fmt or infer_format(source)).lower()
    factories = _extractor_factories()
    if name not in factories:
        raise UnsupportedFormatError(name, available_formats())
    return factories[name](str(source))


def extract_data(source: Union[str, Path], fmt: Optional[str] = None) -> List[RawRecord]:
    """
    Extract every raw record from a source.

    Raises
    ------
    SourceNotFoundError
        If a file source does not exist.
    ExtractionError
        If the source cannot be read or parsed.
    """
    extractor = resolve_extractor(source, fmt)
    try:
        return list(extractor.extract())
    finally:
        extractor.close()


__all__ = ["available_formats", "extract_data", "infer_format", "resolve_extractor"]
