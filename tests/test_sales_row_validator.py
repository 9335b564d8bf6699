from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

from app.domain.sales import Period
from app.mappers.schema_mapper import CANONICAL_FIELDS
from app.validators.sales_row_validator import SalesRowValidator

PERIOD = Period(month="Fevereiro", year=2025)


def _row(**values: object) -> dict[str, object]:
    row: dict[str, object] = {field: None for field in CANONICAL_FIELDS}
    row.update(values)
    return row


class TestSalesRowValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = SalesRowValidator()

    def _validate(self, **values: object):
        return self.validator.validate_mapped_row(
            mapped_row=_row(**values),
            row_number=7,
            period=PERIOD,
            source_filename="Fevereiro-2025.xlsx",
        )

    def test_valid_row_takes_period_from_file(self) -> None:
        record, errors = self._validate(product="  Caneta ", quantity="10", category=" Papelaria ")

        self.assertEqual(errors, [])
        self.assertIsNotNone(record)
        self.assertEqual(record.product, "Caneta")
        self.assertEqual(record.quantity, 10)
        self.assertEqual(record.month, "Fevereiro")
        self.assertEqual(record.year, 2025)
        self.assertEqual(record.category, "Papelaria")
        self.assertEqual(record.source_filename, "Fevereiro-2025.xlsx")

    def test_missing_product_is_rejected(self) -> None:
        record, errors = self._validate(product="   ", quantity=5)

        self.assertIsNone(record)
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].column, "product")
        self.assertEqual(errors[0].row_number, 7)

    def test_quantity_truncates_toward_zero(self) -> None:
        record, _ = self._validate(product="A", quantity=10.9)
        self.assertEqual(record.quantity, 10)

        record, _ = self._validate(product="A", quantity="3.99")
        self.assertEqual(record.quantity, 3)

    def test_zero_quantity_is_kept(self) -> None:
        record, errors = self._validate(product="A", quantity=0)

        self.assertEqual(errors, [])
        self.assertEqual(record.quantity, 0)

    def test_bad_quantities_are_rejected(self) -> None:
        for value in ("abc", -1, "-0.5", None, "", float("nan"), float("inf"), "Infinity", True):
            with self.subTest(value=value):
                record, errors = self._validate(product="A", quantity=value)
                self.assertIsNone(record)
                self.assertEqual(errors[0].column, "quantity")

    def test_comma_decimal_prices(self) -> None:
        record, errors = self._validate(product="A", quantity=1, unit_price="12,50", total_revenue="25,00")

        self.assertEqual(errors, [])
        self.assertEqual(record.unit_price, Decimal("12.50"))
        self.assertEqual(record.total_revenue, Decimal("25.00"))

    def test_absent_price_stays_none_and_zero_stays_zero(self) -> None:
        absent, _ = self._validate(product="A", quantity=1, unit_price="  ")
        zero, _ = self._validate(product="A", quantity=1, unit_price=0)

        self.assertIsNone(absent.unit_price)
        self.assertIsNone(absent.total_revenue)
        self.assertEqual(zero.unit_price, Decimal("0"))

    def test_currency_prefix_and_thousands_separator(self) -> None:
        record, errors = self._validate(product="A", quantity=1, unit_price="R$ 2,50", total_revenue="R$1.234,56")

        self.assertEqual(errors, [])
        self.assertEqual(record.unit_price, Decimal("2.50"))
        self.assertEqual(record.total_revenue, Decimal("1234.56"))

    def test_unusable_price_keeps_row_and_leaves_price_empty(self) -> None:
        for value in ("N/A", "abc", "-3", -0.01, "1e999999999"):
            with self.subTest(value=value):
                notes: list[str] = []
                record, errors = self.validator.validate_mapped_row(
                    mapped_row=_row(product="A", quantity=4, unit_price=value),
                    row_number=7,
                    period=PERIOD,
                    notes=notes,
                )
                self.assertEqual(errors, [])
                self.assertEqual(record.quantity, 4)
                self.assertIsNone(record.unit_price)
                self.assertEqual(len(notes), 1)
                self.assertTrue(notes[0].startswith("Row 7: unit_price"))

    def test_oversized_quantities_are_rejected_without_expanding_them(self) -> None:
        for value in ("1e999999999", "1000001", 2e9):
            with self.subTest(value=value):
                record, errors = self._validate(product="A", quantity=value)
                self.assertIsNone(record)
                self.assertEqual(errors[0].column, "quantity")
                self.assertIn("at most", errors[0].message)

        record, _ = self._validate(product="A", quantity="1000000")
        self.assertEqual(record.quantity, 1_000_000)

    def test_overlong_product_is_rejected(self) -> None:
        record, errors = self._validate(product="x" * 201, quantity=1)

        self.assertIsNone(record)
        self.assertEqual(errors[0].column, "product")

    def test_overlong_descriptive_field_is_left_empty(self) -> None:
        notes: list[str] = []
        record, errors = self.validator.validate_mapped_row(
            mapped_row=_row(product="A", quantity=1, region="r" * 101, category="Papelaria"),
            row_number=2,
            period=PERIOD,
            notes=notes,
        )

        self.assertEqual(errors, [])
        self.assertIsNone(record.region)
        self.assertEqual(record.category, "Papelaria")
        self.assertIn("region", notes[0])

    def test_integral_float_codes_are_stringified_without_decimals(self) -> None:
        record, _ = self._validate(product="A", quantity=1, transaction_id=1001.0)

        self.assertEqual(record.transaction_id, "1001")

    def test_completely_empty_row(self) -> None:
        self.assertTrue(self.validator.is_completely_empty_row({"a": None, "b": "  ", "c": float("nan")}))
        self.assertFalse(self.validator.is_completely_empty_row({"a": None, "b": 0}))


class TestTransactionDateParsing(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = SalesRowValidator()

    def test_excel_serial_number(self) -> None:
        expected = datetime(2024, 1, 1, tzinfo=timezone.utc)

        self.assertEqual(self.validator.parse_transaction_date(45292), expected)
        self.assertEqual(self.validator.parse_transaction_date("45292"), expected)

    def test_text_formats(self) -> None:
        expected = datetime(2024, 3, 15, tzinfo=timezone.utc)

        self.assertEqual(self.validator.parse_transaction_date("2024-03-15"), expected)
        self.assertEqual(self.validator.parse_transaction_date("15/03/2024"), expected)
        self.assertEqual(self.validator.parse_transaction_date("2024/03/15"), expected)

    def test_date_and_datetime_cells(self) -> None:
        self.assertEqual(
            self.validator.parse_transaction_date(date(2024, 3, 15)),
            datetime(2024, 3, 15, tzinfo=timezone.utc),
        )
        self.assertEqual(
            self.validator.parse_transaction_date(datetime(2024, 3, 15, 10, 30)),
            datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc),
        )

    def test_unparseable_date_never_rejects_the_row(self) -> None:
        record, errors = SalesRowValidator().validate_mapped_row(
            mapped_row=_row(product="A", quantity=1, transaction_date="ontem"),
            row_number=1,
            period=PERIOD,
        )

        self.assertEqual(errors, [])
        self.assertIsNone(record.transaction_date)
        self.assertIsNone(self.validator.parse_transaction_date(-5))

    def test_out_of_range_serials_yield_none(self) -> None:
        for value in ("1e999999999", 1e300, 2_958_466, "NaN"):
            with self.subTest(value=value):
                self.assertIsNone(self.validator.parse_transaction_date(value))


if __name__ == "__main__":
    unittest.main()
