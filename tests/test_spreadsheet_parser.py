"""
tests/test_spreadsheet_parser.py

Parser tests over real in-memory workbooks and CSV payloads.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.domain.errors import PeriodNotFoundError, UnreadableFileError
from app.services.spreadsheet_parser import NO_VALID_ROWS_WARNING, SpreadsheetParser


@pytest.fixture()
def parser() -> SpreadsheetParser:
    return SpreadsheetParser(log_validation_errors=False)


def test_reads_keeps_and_warns_per_rejected_row(parser, xlsx_bytes) -> None:
    content = xlsx_bytes(
        [
            ["produto", "quantidade"],
            ["Caneta", 10],
            [None, 5],
            ["Caderno", "abc"],
        ]
    )

    result = parser.parse(content, "Fevereiro-2025.xlsx")

    assert result.read == 3
    assert result.kept == 1
    assert len(result.warnings) == 2
    record = result.records[0]
    assert (record.product, record.quantity, record.month, record.year) == ("Caneta", 10, "Fevereiro", 2025)
    assert result.warnings[0].startswith("Row 2 skipped: product=")
    assert result.warnings[1].startswith("Row 3 skipped: product=Caderno, quantity=abc")
    assert [rejection.row_number for rejection in result.rejections] == [2, 3]


def test_only_first_sheet_is_read(parser, xlsx_bytes) -> None:
    content = xlsx_bytes(
        [["Produto", "Qtd"], ["A", 1]],
        [["Produto", "Qtd"], ["B", 2], ["C", 3]],
    )

    result = parser.parse(content, "Marco 2025.xlsx")

    assert [record.product for record in result.records] == ["A"]
    assert result.period.month == "Março"


def test_workbook_optional_columns_and_dates(parser, xlsx_bytes) -> None:
    content = xlsx_bytes(
        [
            ["Data", "ID Transação", "Produto", "Região", "Quantidade", "Preço Unitário", "Receita Total"],
            ["15/03/2025", 1001, "Caneta", "Sul", 4, 2.5, 10],
            [None, None, "Lápis", None, 2.7, None, None],
        ]
    )

    result = parser.parse(content, "marco_2025.xlsx", source_file_key="owner/marco_2025.xlsx")

    first, second = result.records
    assert first.transaction_id == "1001"
    assert first.region == "Sul"
    assert first.unit_price == Decimal("2.5")
    assert first.total_revenue == Decimal("10")
    assert first.transaction_date is not None and first.transaction_date.day == 15
    assert first.source_file_key == "owner/marco_2025.xlsx"
    assert first.source_filename == "marco_2025.xlsx"
    assert second.quantity == 2
    assert second.unit_price is None
    assert second.transaction_date is None


def test_blank_rows_are_not_counted(parser, xlsx_bytes) -> None:
    content = xlsx_bytes(
        [
            ["Produto", "Quantidade"],
            ["A", 1],
            [None, None],
            ["B", 2],
        ]
    )

    result = parser.parse(content, "Abril 2025.xlsx")

    assert result.read == 2
    assert result.kept == 2
    assert result.warnings == ()


def test_sample_is_first_five_records(parser, xlsx_bytes) -> None:
    rows = [["Produto", "Quantidade"]] + [[f"P{i}", i] for i in range(8)]

    result = parser.parse(xlsx_bytes(rows), "Maio 2025.xlsx")

    assert result.kept == 8
    assert [record.product for record in result.sample] == ["P0", "P1", "P2", "P3", "P4"]


def test_semicolon_latin1_csv_with_comma_decimals(parser) -> None:
    content = "Produto;Quantidade;Preço Unitário\nCaneta;10;2,50\nLápis;3;1,25\n".encode("latin-1")

    result = parser.parse(content, "marco-2025.csv")

    assert result.read == 2
    assert [record.product for record in result.records] == ["Caneta", "Lápis"]
    assert result.records[0].unit_price == Decimal("2.50")


def test_utf8_bom_comma_csv(parser) -> None:
    content = "\ufeffProduct,Units,Revenue\nPen,7,70.5\n".encode("utf-8")

    result = parser.parse(content, "Junho 2024.csv")

    assert result.records[0].product == "Pen"
    assert result.records[0].quantity == 7
    assert result.records[0].total_revenue == Decimal("70.5")


def test_missing_required_columns_warn_and_keep_nothing(parser) -> None:
    content = b"Produto,Preco\nCaneta,2\n"

    result = parser.parse(content, "Julho 2024.csv")

    assert result.kept == 0
    assert result.warnings[0].startswith("Missing required column(s): quantity")
    assert result.warnings[-1] == NO_VALID_ROWS_WARNING


def test_period_is_checked_before_the_bytes(parser) -> None:
    with pytest.raises(PeriodNotFoundError):
        parser.parse(b"\x00garbage", "relatorio.xlsx")


def test_corrupt_workbook_is_unreadable(parser) -> None:
    with pytest.raises(UnreadableFileError) as ctx:
        parser.parse(b"this is not a zip archive", "Agosto 2025.xlsx")

    assert ctx.value.filename == "Agosto 2025.xlsx"


def test_binary_csv_and_empty_file_are_unreadable(parser) -> None:
    with pytest.raises(UnreadableFileError):
        parser.parse(b"a,b\x00c", "Agosto 2025.csv")
    with pytest.raises(UnreadableFileError):
        parser.parse(b"", "Agosto 2025.csv")


def test_captured_rejections_are_capped() -> None:
    parser = SpreadsheetParser(max_validation_errors=1, log_validation_errors=False)
    content = b"Produto,Quantidade\n,1\n,2\nA,3\n"

    result = parser.parse(content, "Outubro 2025.csv")

    assert result.read == 3
    assert result.kept == 1
    assert len(result.rejections) == 1
    assert len(result.warnings) == 1


def test_to_text_renders_first_sheet_as_csv(parser, xlsx_bytes) -> None:
    text = parser.to_text(xlsx_bytes([["Produto", "Qtd"], ["A", 1]]), "Novembro 2025.xlsx")

    assert text.splitlines() == ["Produto,Qtd", "A,1"]


def test_unusable_price_keeps_the_sale_and_warns(parser) -> None:
    content = 'Produto,Quantidade,Preço Unitário\nCaneta,10,"R$ 2,50"\nLapis,4,N/A\n'.encode("utf-8")

    result = parser.parse(content, "Junho 2025.csv")

    assert (result.read, result.kept) == (2, 2)
    caneta, lapis = result.records
    assert caneta.unit_price == Decimal("2.50")
    assert (lapis.quantity, lapis.unit_price) == (4, None)
    assert result.rejections == ()
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Row 2: unit_price 'N/A'")


def test_huge_exponent_quantity_is_rejected(parser) -> None:
    result = parser.parse(b"produto,quantidade\nCaneta,1e999999999\nLapis,2\n", "Julho 2025.csv")

    assert (result.read, result.kept) == (2, 1)
    assert result.rejections[0].column == "quantity"
    assert result.warnings[0].startswith("Row 1 skipped: product=Caneta")


def test_missing_column_warning_names_unrecognized_headers(parser) -> None:
    result = parser.parse(b"Produto,Observacao\nCaneta,x\n", "Julho 2024.csv")

    assert "unrecognized: Observacao" in result.warnings[0]
