"""
Loader interfaces for the sales ETL pipeline.

A loader writes a batch of clean transactions to a target as one unit: either
everything lands or the target is left as it was and `LoadError` is raised.
"""

from __future__ import annotations

import abc
from typing import Any, Dict, Protocol, Sequence, Tuple, runtime_checkable

from sales_etl.domain.models import CleanTransaction

LOAD_COLUMNS: Tuple[str, ...] = (
    "transaction_id",
    "product",
    "amount",
    "quantity",
    "total_amount",
    "customer_id",
    "transaction_date",
    "region",
)


def record_to_row(record: CleanTransaction) -> Dict[str, Any]:
    """JSON-safe column -> value mapping (decimals as strings, dates as ISO)."""
    dumped = record.model_dump(mode="json")
    return {column: dumped[column] for column in LOAD_COLUMNS}


@runtime_checkable
class Loader(Protocol):
    """
    Common interface all loaders must implement.

    Attributes
    ----------
    name : str
        Registry key for the target.
    description : str
        A human-friendly summary of the target.
    """

    name: str
    description: str

    def load(self, records: Sequence[CleanTransaction]) -> int:
        """
        Write `records` to the target and return the number of rows written.

        Raises
        ------
        LoadError
            If the write failed; the target has been rolled back.
        """
        ...

    def close(self) -> None:
        """Release any resources held by the loader."""
        ...


class AbstractLoader(abc.ABC):
    """
    ABC helper for class-based loaders.
    """

    name: str
    description: str

    @abc.abstractmethod
    def load(self, records: Sequence[CleanTransaction]) -> int:  # pragma: no cover - interface only
        raise NotImplementedError

    def close(self) -> None:
        return None


__all__ = ["AbstractLoader", "LOAD_COLUMNS", "Loader", "record_to_row"]
