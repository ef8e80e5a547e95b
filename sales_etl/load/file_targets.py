"""
File loaders: CSV and JSON Lines.

Both write to a temporary file next to the target and atomically replace the
target only after every row is written. On failure the temporary file is
removed and the previous target, if any, is untouched.
"""

from __future__ import annotations

import abc
import csv
import json
import os
import tempfile
from pathlib import Path
from typing import IO, Sequence, Union

from sales_etl.domain.models import CleanTransaction
from sales_etl.errors import LoadError
from sales_etl.load.abstract import LOAD_COLUMNS, AbstractLoader, record_to_row
from sales_etl.utils.logging import get_logger

log = get_logger(__name__)


class _AtomicFileLoader(AbstractLoader):
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @abc.abstractmethod
    def _write(self, handle: IO[str], records: Sequence[CleanTransaction]) -> int:
        raise NotImplementedError

    def load(self, records: Sequence[CleanTransaction]) -> int:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
        except OSError as exc:
            raise LoadError(f"Cannot prepare target {self.path}: {exc}") from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as handle:
                written = self._write(handle, records)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise LoadError(
                f"Writing {self.path} failed; previous contents kept: {exc}"
            ) from exc
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        log.info(f"Wrote {written} rows to {self.path}", extra={"path": str(self.path)})
        return written


class CsvFileLoader(_AtomicFileLoader):
    name: str = "csv"
    description: str = "CSV file with header, replaced atomically."

    def _write(self, handle: IO[str], records: Sequence[CleanTransaction]) -> int:
        writer = csv.DictWriter(handle, fieldnames=list(LOAD_COLUMNS))
        writer.writeheader()
        for record in records:
            writer.writerow(record_to_row(record))
        return len(records)


class JsonLinesFileLoader(_AtomicFileLoader):
    name: str = "jsonl"
    description: str = "JSON Lines file, one object per transaction, replaced atomically."

    def _write(self, handle: IO[str], records: Sequence[CleanTransaction]) -> int:
        for record in records:
            handle.write(json.dumps(record_to_row(record)))
            handle.write("\n")
        return len(records)


__all__ = ["CsvFileLoader", "JsonLinesFileLoader"]
