"""
Loader registry.

For file targets `target_path` is the output file; for the postgres target it
names the table. Both fall back to settings.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from sales_etl.config import get_settings
from sales_etl.errors import ConfigurationError
from sales_etl.load.abstract import Loader
from sales_etl.load.file_targets import CsvFileLoader, JsonLinesFileLoader
from sales_etl.load.postgres_target import PostgresLoader


def _loader_factories() -> Dict[str, Callable[[Optional[str]], Loader]]:
    """Registry of available loaders, keyed by target name."""
    settings = get_settings()
    return {
        "postgres": lambda path: PostgresLoader(table=path or settings.etl_table),
        "csv": lambda path: CsvFileLoader(path or settings.etl_target_path),
        "jsonl": lambda path: JsonLinesFileLoader(path or settings.etl_target_path),
    }


def available_targets() -> List[str]:
    """List available load target names."""
    return sorted(_loader_factories().keys())


def resolve_loader(target: str, target_path: Optional[str] = None) -> Loader:
    factories = _loader_factories()
    name = target.lower()
    if name not in factories:
        raise ConfigurationError(
            f"Unknown target '{target}'. Available: {', '.join(sorted(factories))}"
        )
    return factories[name](target_path)


__all__ = ["available_targets", "resolve_loader"]
