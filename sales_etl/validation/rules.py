"""
Raw-record validation rules.

Rules run against the raw dict before schema coercion and return a list of
reasons (empty when the record passes). Each reason is prefixed with the
field it concerns, e.g. ``"customer_id: missing value"``.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Protocol, Sequence, runtime_checkable

from sales_etl.extract.abstract import RawRecord

REQUIRED_FIELDS: Sequence[str] = (
    "transaction_id",
    "product",
    "amount",
    "customer_id",
    "transaction_date",
)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@runtime_checkable
class ValidationRule(Protocol):
    name: str

    def check(self, raw: RawRecord) -> List[str]:
        """Return the reasons `raw` fails this rule; empty when it passes."""
        ...


class RequiredFieldsRule:
    """No null or blank values in required fields."""

    name: str = "required_fields"

    def __init__(self, fields: Sequence[str] = REQUIRED_FIELDS) -> None:
        self.fields = tuple(fields)

    def check(self, raw: RawRecord) -> List[str]:
        return [f"{field}: missing value" for field in self.fields if _is_missing(raw.get(field))]


class AllowedRegionsRule:
    """
    Restrict `region` to a known set (case-insensitive). Records without a
    region pass.
    """

    name: str = "allowed_regions"

    def __init__(self, regions: Iterable[str]) -> None:
        self.regions = frozenset(region.strip().lower() for region in regions)

    def check(self, raw: RawRecord) -> List[str]:
        region = raw.get("region")
        if _is_missing(region):
            return []
        if str(region).strip().lower() not in self.regions:
            return [f"region: '{region}' is not an allowed region"]
        return []


__all__ = [
    "REQUIRED_FIELDS",
    "AllowedRegionsRule",
    "RequiredFieldsRule",
    "ValidationRule",
]
