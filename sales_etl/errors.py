"""
Error taxonomy for the sales ETL pipeline.

Every error raised by a pipeline stage derives from `EtlError` so the
orchestrator and CLI can apply one failure policy to all of them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union


class EtlError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(EtlError):
    """Unknown target, failure policy, or otherwise invalid option."""


class ExtractionError(EtlError):
    """The source could not be read or parsed."""


class SourceNotFoundError(ExtractionError):
    """The source file does not exist."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        super().__init__(f"Source file not found: {self.path}")


class UnsupportedFormatError(ExtractionError):
    """No extractor is registered for the requested or inferred format."""

    def __init__(self, fmt: str, available: list[str] | None = None) -> None:
        self.fmt = fmt
        message = f"Unsupported source format '{fmt}'"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message)


class ValidationThresholdError(EtlError):
    """Too many records were rejected during validation."""

    def __init__(self, rejected: int, total: int, max_ratio: float) -> None:
        self.rejected = rejected
        self.total = total
        self.max_ratio = max_ratio
        ratio = rejected / total if total else 0.0
        super().__init__(
            f"Rejected {rejected}/{total} records ({ratio:.1%}), "
            f"above the allowed {max_ratio:.1%}"
        )


class LoadError(EtlError):
    """Writing to the target failed; the target was rolled back."""


__all__ = [
    "EtlError",
    "ConfigurationError",
    "ExtractionError",
    "SourceNotFoundError",
    "UnsupportedFormatError",
    "ValidationThresholdError",
    "LoadError",
]
