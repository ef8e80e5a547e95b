"""
Extractor interfaces for the sales ETL pipeline.

Concrete extractors (CSV, JSON, Postgres) implement the `Extractor` protocol
and yield raw records as plain dicts. Nothing is validated at this stage;
empty values surface as `None` so the validator can report them.
"""

from __future__ import annotations

import abc
from typing import Any, Dict, Iterator, Protocol, runtime_checkable

RawRecord = Dict[str, Any]


@runtime_checkable
class Extractor(Protocol):
    """
    Common interface all extractors must implement.

    Attributes
    ----------
    name : str
        Registry key for the source format.
    description : str
        A human-friendly summary of the source.
    """

    name: str
    description: str

    def extract(self) -> Iterator[RawRecord]:
        """
        Yield raw records from the source in source order.

        Raises
        ------
        ExtractionError
            If the source cannot be read or parsed.
        """
        ...

    def close(self) -> None:
        """Release any resources held by the extractor."""
        ...


class AbstractExtractor(abc.ABC):
    """
    ABC helper for class-based extractors.

    Subclasses set `name` and `description` and implement `extract`.
    """

    name: str
    description: str

    @abc.abstractmethod
    def extract(self) -> Iterator[RawRecord]:  # pragma: no cover - interface only
        raise NotImplementedError

    def close(self) -> None:
        return None


__all__ = ["AbstractExtractor", "Extractor", "RawRecord"]
