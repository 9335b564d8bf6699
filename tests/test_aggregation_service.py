"""
tests/test_aggregation_service.py

Fact sheet aggregation and rendering. Pure functions except for the
SalesFactsService case at the bottom, which reads from SQLite.
"""

from __future__ import annotations

import re
from types import SimpleNamespace

from app.domain.sales import SalesRecordInput
from app.services.aggregation_service import (
    FACT_SHEET_HEADER,
    NO_DATA_MARKER,
    TRUNCATION_MARKER,
    SalesFactsService,
    render_fact_sheet,
    summarize,
)
from app.services.sales_ingestion_service import SalesIngestionService


def _rec(product, quantity, month="Janeiro", year=2025):
    return SimpleNamespace(product=product, quantity=quantity, month=month, year=year)


def test_quantity_ties_break_alphabetically() -> None:
    sheet = summarize([_rec("B", 5), _rec("A", 5)])

    (fact,) = sheet.facts
    assert fact.period_key == "Janeiro/2025"
    assert [item.product for item in fact.products] == ["A", "B"]


def test_sums_per_product_and_sorts_by_quantity() -> None:
    sheet = summarize([_rec("Caneta", 3), _rec("Lápis", 10), _rec("Caneta", 9), _rec("Borracha", 1)])

    products = [(item.product, item.total_quantity) for item in sheet.facts[0].products]
    assert products == [("Caneta", 12), ("Lápis", 10), ("Borracha", 1)]


def test_periods_keep_first_encounter_order() -> None:
    sheet = summarize(
        [
            _rec("A", 1, month="Março"),
            _rec("A", 1, month="Janeiro"),
            _rec("B", 1, month="Março"),
            _rec("A", 1, month="Janeiro", year=2024),
        ]
    )

    assert [fact.period_key for fact in sheet.facts] == ["Março/2025", "Janeiro/2025", "Janeiro/2024"]


def test_within_period_order_is_independent_of_input_order() -> None:
    records = [_rec("C", 2), _rec("A", 2), _rec("B", 7), _rec("A", 1)]

    forward = render_fact_sheet(summarize(records))
    backward = render_fact_sheet(summarize(list(reversed(records))))

    assert forward == backward


def test_blank_product_is_reported_as_unknown() -> None:
    sheet = summarize([_rec("", 4), _rec(None, 1)])

    assert [(item.product, item.total_quantity) for item in sheet.facts[0].products] == [("Unknown", 5)]


def test_accepts_domain_records() -> None:
    sheet = summarize([SalesRecordInput(product="Caneta", quantity=10, month="Fevereiro", year=2025)])

    assert sheet.facts[0].period_key == "Fevereiro/2025"


def test_renders_numbered_lists_per_period() -> None:
    text = render_fact_sheet(
        summarize(
            [
                _rec("Caneta", 10, month="Janeiro"),
                _rec("Caderno", 4, month="Janeiro"),
                _rec("Lápis", 7, month="Fevereiro"),
            ]
        )
    )

    assert text == (
        f"{FACT_SHEET_HEADER}\n"
        "\n"
        "Janeiro/2025:\n"
        "1. Caneta: 10\n"
        "2. Caderno: 4\n"
        "\n"
        "Fevereiro/2025:\n"
        "1. Lápis: 7"
    )


def test_no_records_render_the_no_data_marker() -> None:
    assert render_fact_sheet(summarize([])) == NO_DATA_MARKER


def test_identical_input_renders_identical_text() -> None:
    records = [_rec(f"P{index % 13}", index, month=("Janeiro", "Fevereiro")[index % 2]) for index in range(200)]

    assert render_fact_sheet(summarize(records)) == render_fact_sheet(summarize(list(records)))


def test_output_is_cut_at_a_line_boundary_within_budget() -> None:
    records = [_rec(f"Produto {index:03d}", 1000 - index) for index in range(500)]

    text = render_fact_sheet(summarize(records), max_chars=400)

    assert len(text) <= 400
    assert text.endswith(TRUNCATION_MARKER)
    body = text.splitlines()[:-1]
    assert body[0] == FACT_SHEET_HEADER
    for line in body[3:]:
        assert re.fullmatch(r"\d+\. Produto \d{3}: \d+", line)


def test_default_budget_is_ten_thousand_characters() -> None:
    records = [_rec(f"Produto {index:04d}", index) for index in range(2000)]

    text = render_fact_sheet(summarize(records))

    assert len(text) <= 10_000
    assert text.endswith(TRUNCATION_MARKER)


def test_products_per_period_can_be_capped() -> None:
    text = render_fact_sheet(
        summarize([_rec("A", 3), _rec("B", 2), _rec("C", 1)]),
        max_products_per_period=2,
    )

    assert text.splitlines()[-3:] == ["1. A: 3", "2. B: 2", "(+1 more products)"]


def test_facts_service_reads_only_the_owners_records(db_session, owner_id, other_owner_id) -> None:
    ingestion = SalesIngestionService(batch_size=500)
    ingestion.ingest(
        db=db_session,
        owner_id=owner_id,
        records=[SalesRecordInput(product="Caneta", quantity=10, month="Fevereiro", year=2025)],
    )
    ingestion.ingest(
        db=db_session,
        owner_id=other_owner_id,
        records=[SalesRecordInput(product="Segredo", quantity=99, month="Fevereiro", year=2025)],
    )

    facts = SalesFactsService().facts_for_owner(db=db_session, owner_id=owner_id)

    assert facts.record_count == 1
    assert "1. Caneta: 10" in facts.text
    assert "Segredo" not in facts.text
