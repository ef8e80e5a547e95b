"""
Transformation stage: normalize validated transactions and build daily summaries.
"""

from __future__ import annotations

import re
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sales_etl.domain.models import CleanTransaction, DailySummary, SalesTransaction

CENTS = Decimal("0.01")
_WHITESPACE = re.compile(r"\s+")


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _clean_text(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def _clean_region(region: Optional[str]) -> Optional[str]:
    if region is None:
        return None
    cleaned = _clean_text(region)
    return cleaned.title() if cleaned else None


def normalize_transaction(txn: SalesTransaction) -> CleanTransaction:
    """
    Normalize one transaction.

    - product: inner whitespace collapsed, title-cased
    - customer_id: upper-cased
    - region: title-cased, blank -> None
    - amount: rounded half-up to cents
    - total_amount: amount * quantity, rounded half-up to cents
    """
    amount = _to_cents(txn.amount)
    return CleanTransaction(
        transaction_id=txn.transaction_id,
        product=_clean_text(txn.product).title(),
        amount=amount,
        quantity=txn.quantity,
        customer_id=txn.customer_id.upper(),
        transaction_date=txn.transaction_date,
        region=_clean_region(txn.region),
        total_amount=_to_cents(amount * txn.quantity),
    )


def transform_records(transactions: Iterable[SalesTransaction]) -> List[CleanTransaction]:
    """Normalize every transaction, preserving order."""
    return [normalize_transaction(txn) for txn in transactions]


def summarize_daily(transactions: Iterable[CleanTransaction]) -> List[DailySummary]:
    """
    Aggregate clean transactions per (transaction_date, product).

    Returns summaries sorted by date, then product.
    """
    buckets: Dict[Tuple[date, str], Dict[str, object]] = defaultdict(
        lambda: {"transactions": 0, "units": 0, "revenue": Decimal("0")}
    )
    for txn in transactions:
        bucket = buckets[(txn.transaction_date, txn.product)]
        bucket["transactions"] += 1  # type: ignore[operator]
        bucket["units"] += txn.quantity  # type: ignore[operator]
        bucket["revenue"] += txn.total_amount  # type: ignore[operator]

    return [
        DailySummary(
            transaction_date=day,
            product=product,
            transactions=values["transactions"],
            units=values["units"],
            revenue=_to_cents(values["revenue"]),  # type: ignore[arg-type]
        )
        for (day, product), values in sorted(buckets.items())
    ]


__all__ = ["normalize_transaction", "summarize_daily", "transform_records"]
