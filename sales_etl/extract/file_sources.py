"""
File extractors: CSV and JSON / JSON Lines.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterator, List, Union

from sales_etl.errors import ExtractionError, SourceNotFoundError
from sales_etl.extract.abstract import AbstractExtractor, RawRecord
from sales_etl.utils.logging import get_logger

log = get_logger(__name__)

JSON_LINES_SUFFIXES = frozenset({".jsonl", ".ndjson"})


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _require_file(path: Path) -> None:
    if not path.is_file():
        raise SourceNotFoundError(path)


class CsvExtractor(AbstractExtractor):
    """
    Read a delimited text file with a header row.

    Empty cells become None. Columns beyond the header are dropped; short
    rows get None for the missing columns.
    """

    name: str = "csv"
    description: str = "Delimited text file with a header row (csv.DictReader)."

    def __init__(
        self, path: Union[str, Path], delimiter: str = ",", encoding: str = "utf-8"
    ) -> None:
        self.path = Path(path)
        self.delimiter = delimiter
        self.encoding = encoding

    def extract(self) -> Iterator[RawRecord]:
        _require_file(self.path)
        log.debug("Reading CSV source", extra={"path": str(self.path)})
        try:
            with self.path.open("r", newline="", encoding=self.encoding) as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)
                if not reader.fieldnames:
                    raise ExtractionError(f"CSV source {self.path} has no header row")
                for row in reader:
                    yield {
                        key.strip(): _blank_to_none(value)
                        for key, value in row.items()
                        if key is not None
                    }
        except (csv.Error, UnicodeDecodeError) as exc:
            raise ExtractionError(f"Could not parse CSV source {self.path}: {exc}") from exc


class JsonExtractor(AbstractExtractor):
    """
    Read JSON sources.

    `.jsonl` / `.ndjson` files hold one object per line. Any other suffix is
    parsed as one document: either a list of objects or an object with a
    `records` list.
    """

    name: str = "json"
    description: str = "JSON document (list or {'records': [...]}) or JSON Lines."

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def extract(self) -> Iterator[RawRecord]:
        _require_file(self.path)
        if self.path.suffix.lower() in JSON_LINES_SUFFIXES:
            yield from self._extract_lines()
        else:
            yield from self._extract_document()

    def _extract_lines(self) -> Iterator[RawRecord]:
        try:
            with self.path.open("r", encoding=self.encoding) as f:
                for lineno, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        obj = json.loads(line)
                    except json.JSONDecodeError as exc:
                        raise ExtractionError(
                            f"{self.path}:{lineno}: invalid JSON ({exc.msg})"
                        ) from exc
                    if not isinstance(obj, dict):
                        raise ExtractionError(f"{self.path}:{lineno}: expected a JSON object")
                    yield {key: _blank_to_none(value) for key, value in obj.items()}
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Could not decode JSON Lines source {self.path}: {exc}") from exc

    def _extract_document(self) -> Iterator[RawRecord]:
        try:
            with self.path.open("r", encoding=self.encoding) as f:
                document = json.load(f)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"{self.path}: invalid JSON ({exc.msg})") from exc
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Could not decode JSON source {self.path}: {exc}") from exc

        records: List[Any]
        if isinstance(document, list):
            records = document
        elif isinstance(document, dict) and isinstance(document.get("records"), list):
            records = document["records"]
        else:
            raise ExtractionError(
                f"{self.path}: expected a list of objects or an object with a 'records' list"
            )

        for index, obj in enumerate(records):
            if not isinstance(obj, dict):
                raise ExtractionError(f"{self.path}: record {index} is not a JSON object")
            yield {key: _blank_to_none(value) for key, value in obj.items()}


__all__ = ["CsvExtractor", "JsonExtractor", "JSON_LINES_SUFFIXES"]
