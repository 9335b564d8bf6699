"""
app/services/aggregation_service.py

Re-aggregates an owner's stored sales records into the fact sheet handed
to the assistant.

Ordering rules
--------------
Periods appear in the order they are first met in the input (records are
read oldest first, so this is upload order). Inside a period, products are
sorted by total quantity descending, then by product name ascending, which
makes the per-period list independent of row order.

Size budget
-----------
The rendered sheet never exceeds ``max_chars``. When it would, it is cut
at a line boundary and TRUNCATION_MARKER is appended. An optional
``max_products_per_period`` keeps only the top N products of each period.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Iterable

from sqlalchemy.orm import Session

from app.config import get_fact_sheet_settings
from app.domain.sales import AggregatedFact, FactSheet, ProductTotal
from app.repositories.sales_record_repository import RecordStore, SalesRecordRepository

logger = logging.getLogger(__name__)

FACT_SHEET_HEADER = "STRUCTURED FACTS FOR ANALYSIS:"
NO_DATA_MARKER = "No sales found. Please upload data."
TRUNCATION_MARKER = "[... fact sheet truncated ...]"
UNKNOWN_PRODUCT = "Unknown"
DEFAULT_MAX_CHARS = 10_000


def summarize(records: Iterable[Any]) -> FactSheet:
    """
    Group records by "month/year" and sum quantity per product.

    Accepts anything exposing product, quantity, month and year
    (SalesRecord rows or SalesRecordInput values).
    """

    totals_by_period: dict[str, dict[str, int]] = {}
    for record in records:
        period_key = f"{record.month}/{record.year}"
        product = (record.product or "").strip() or UNKNOWN_PRODUCT
        totals = totals_by_period.setdefault(period_key, defaultdict(int))
        totals[product] += _as_quantity(record.quantity)

    facts = tuple(
        AggregatedFact(
            period_key=period_key,
            products=tuple(
                ProductTotal(product=product, total_quantity=total)
                for product, total in sorted(totals.items(), key=lambda item: (-item[1], item[0]))
            ),
        )
        for period_key, totals in totals_by_period.items()
    )
    return FactSheet(facts=facts)


def render_fact_sheet(
    sheet: FactSheet,
    *,
    max_chars: int = DEFAULT_MAX_CHARS,
    max_products_per_period: int | None = None,
) -> str:
    """
    Render *sheet* as plain text:

        STRUCTURED FACTS FOR ANALYSIS:

        Janeiro/2025:
        1. Caneta: 10
        2. Caderno: 4

    An empty sheet renders as NO_DATA_MARKER alone.
    """

    if sheet.is_empty:
        return NO_DATA_MARKER

    lines: list[str] = [FACT_SHEET_HEADER]
    for fact in sheet.facts:
        if not fact.products:
            continue
        products = fact.products
        hidden = 0
        if max_products_per_period is not None and len(products) > max_products_per_period:
            hidden = len(products) - max_products_per_period
            products = products[:max_products_per_period]

        lines.append("")
        lines.append(f"{fact.period_key}:")
        lines.extend(
            f"{position}. {item.product}: {item.total_quantity}"
            for position, item in enumerate(products, start=1)
        )
        if hidden:
            lines.append(f"(+{hidden} more products)")

    return _fit_to_budget(lines, max_chars=max_chars)


def _fit_to_budget(lines: list[str], *, max_chars: int) -> str:
    text = "\n".join(lines)
    if len(text) <= max_chars:
        return text

    # Reserve room for the newline and the marker itself.
    budget = max_chars - len(TRUNCATION_MARKER) - 1
    kept: list[str] = []
    used = 0
    for line in lines:
        cost = len(line) + (1 if kept else 0)
        if used + cost > budget:
            break
        kept.append(line)
        used += cost

    if not kept:
        return TRUNCATION_MARKER[:max_chars]
    return "\n".join(kept) + "\n" + TRUNCATION_MARKER


def _as_quantity(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class OwnerFacts:
    """
    Fact sheet of one owner, structured and rendered.
    """

    record_count: int
    sheet: FactSheet
    text: str


class SalesFactsService:
    """
    Reads every record of an owner and renders the fact sheet.

    Recomputed on each call; nothing is cached between calls.
    """

    def __init__(
        self,
        *,
        max_chars: int = DEFAULT_MAX_CHARS,
        max_products_per_period: int | None = None,
        record_store_factory: Callable[[Session], RecordStore] | None = None,
    ) -> None:
        self._max_chars = max_chars
        self._max_products_per_period = max_products_per_period
        self._record_store_factory = record_store_factory or SalesRecordRepository

    def facts_for_owner(self, *, db: Session, owner_id: uuid.UUID) -> OwnerFacts:
        records = self._record_store_factory(db).list_for_owner(owner_id)
        sheet = summarize(records)
        text = render_fact_sheet(
            sheet,
            max_chars=self._max_chars,
            max_products_per_period=self._max_products_per_period,
        )
        logger.info(
            "Fact sheet built owner=%s records=%s periods=%s chars=%s",
            owner_id,
            len(records),
            len(sheet.facts),
            len(text),
        )
        return OwnerFacts(record_count=len(records), sheet=sheet, text=text)


@lru_cache(maxsize=1)
def get_sales_facts_service() -> SalesFactsService:
    """
    Build and cache the facts service with env-driven settings.
    """

    settings = get_fact_sheet_settings()
    return SalesFactsService(
        max_chars=settings.max_chars,
        max_products_per_period=settings.max_products_per_period,
    )
