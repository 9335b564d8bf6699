"""
app/validators/sales_row_validator.py

Row-level coercion and validation for sales spreadsheets.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from app.domain.sales import Period, RowRejected, SalesRecordInput
from db.models.sales_record import (
    DESCRIPTIVE_MAX_LENGTH,
    MAX_QUANTITY,
    MAX_TOTAL_REVENUE,
    MAX_UNIT_PRICE,
    PRODUCT_MAX_LENGTH,
)

DATE_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
)

# Excel serial day 0, accounting for the 1900 leap-year bug.
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
# Serial of 9999-12-31, the last day a datetime can hold.
MAX_EXCEL_SERIAL = 2_958_465

_CURRENCY_PREFIX_RE = re.compile(r"^R\$\s*", re.IGNORECASE)


class SalesRowValidator:
    """
    Coerces one mapped row into a SalesRecordInput or rejects it.

    Only product and quantity decide whether a row is kept. Optional
    fields that cannot be stored are left empty and reported as notes.
    """

    def is_completely_empty_row(self, row: Mapping[str, Any]) -> bool:
        return all(self._is_blank(value) for value in row.values())

    def validate_mapped_row(
        self,
        *,
        mapped_row: Mapping[str, Any],
        row_number: int,
        period: Period,
        source_filename: str | None = None,
        source_file_key: str | None = None,
        notes: list[str] | None = None,
    ) -> tuple[SalesRecordInput | None, list[RowRejected]]:
        """
        Validate and coerce one canonical mapped row.

        When *notes* is given, one message is appended to it for every
        optional value of a kept row that was dropped.
        """

        errors: list[RowRejected] = []
        row_notes: list[str] = []

        product = self._parse_product(
            value=mapped_row.get("product"),
            row_number=row_number,
            errors=errors,
        )
        quantity = self._parse_quantity(
            value=mapped_row.get("quantity"),
            row_number=row_number,
            errors=errors,
        )

        if errors:
            return None, errors

        record = SalesRecordInput(
            product=product,
            quantity=quantity,
            month=period.month,
            year=period.year,
            unit_price=self._parse_optional_amount(
                value=mapped_row.get("unit_price"),
                row_number=row_number,
                column="unit_price",
                maximum=MAX_UNIT_PRICE,
                notes=row_notes,
            ),
            total_revenue=self._parse_optional_amount(
                value=mapped_row.get("total_revenue"),
                row_number=row_number,
                column="total_revenue",
                maximum=MAX_TOTAL_REVENUE,
                notes=row_notes,
            ),
            transaction_date=self.parse_transaction_date(mapped_row.get("transaction_date")),
            transaction_id=self._parse_descriptive(
                value=mapped_row.get("transaction_id"),
                row_number=row_number,
                column="transaction_id",
                notes=row_notes,
            ),
            category=self._parse_descriptive(
                value=mapped_row.get("category"),
                row_number=row_number,
                column="category",
                notes=row_notes,
            ),
            region=self._parse_descriptive(
                value=mapped_row.get("region"),
                row_number=row_number,
                column="region",
                notes=row_notes,
            ),
            source_filename=source_filename,
            source_file_key=source_file_key,
        )
        if notes is not None:
            notes.extend(row_notes)
        return record, []

    def _parse_product(
        self,
        *,
        value: Any,
        row_number: int,
        errors: list[RowRejected],
    ) -> str:
        if self._is_blank(value):
            errors.append(
                RowRejected(
                    row_number=row_number,
                    column="product",
                    message="Required value is missing.",
                    value=self._stringify_value(value),
                )
            )
            return ""

        product = self._stringify_value(value).strip()
        if len(product) > PRODUCT_MAX_LENGTH:
            errors.append(
                RowRejected(
                    row_number=row_number,
                    column="product",
                    message=f"Product is longer than {PRODUCT_MAX_LENGTH} characters.",
                    value=product[:PRODUCT_MAX_LENGTH],
                )
            )
            return ""
        return product

    def _parse_descriptive(
        self,
        *,
        value: Any,
        row_number: int,
        column: str,
        notes: list[str],
    ) -> str | None:
        if self._is_blank(value):
            return None
        text = self._stringify_value(value).strip()
        if len(text) > DESCRIPTIVE_MAX_LENGTH:
            notes.append(
                f"Row {row_number}: {column} longer than {DESCRIPTIVE_MAX_LENGTH} characters was left empty."
            )
            return None
        return text

    def _parse_quantity(
        self,
        *,
        value: Any,
        row_number: int,
        errors: list[RowRejected],
    ) -> int:
        if self._is_blank(value):
            errors.append(
                RowRejected(
                    row_number=row_number,
                    column="quantity",
                    message="Required value is missing.",
                    value=self._stringify_value(value),
                )
            )
            return 0

        number = self._to_decimal(value, comma_decimal=False)
        if number is None or not number.is_finite():
            message = "Quantity must be a finite number."
        elif number < 0:
            message = "Quantity must be zero or positive."
        elif number > MAX_QUANTITY:
            # Checked before int(): a huge exponent would expand to billions of digits.
            message = f"Quantity must be at most {MAX_QUANTITY}."
        else:
            # Truncate toward zero, never round.
            return int(number)

        errors.append(
            RowRejected(
                row_number=row_number,
                column="quantity",
                message=message,
                value=self._stringify_value(value),
            )
        )
        return 0

    def _parse_optional_amount(
        self,
        *,
        value: Any,
        row_number: int,
        column: str,
        maximum: Decimal,
        notes: list[str],
    ) -> Decimal | None:
        # Absent stays None: 0 is a legitimate price and means something else.
        if self._is_blank(value):
            return None

        number = self._to_decimal(value, comma_decimal=True)
        if number is None or not number.is_finite():
            problem = "is not a number"
        elif not 0 <= number <= maximum:
            problem = f"is outside 0..{maximum}"
        else:
            return number

        notes.append(
            f"Row {row_number}: {column} {self._stringify_value(value)!r} {problem} and was left empty."
        )
        return None

    def parse_transaction_date(self, value: Any) -> datetime | None:
        """
        Best-effort date parsing. Unparseable values yield None; the date
        never decides whether a row is kept.
        """

        if self._is_blank(value):
            return None
        if isinstance(value, datetime):
            return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float, Decimal)):
            return self._from_excel_serial(value)

        raw = str(value).strip()
        serial = self._to_decimal(raw, comma_decimal=False)
        if serial is not None:
            return self._from_excel_serial(serial)

        normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
        try:
            parsed = datetime.fromisoformat(normalized)
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(raw, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue
        return None

    @staticmethod
    def _from_excel_serial(serial: int | float | Decimal) -> datetime | None:
        if isinstance(serial, Decimal) and not serial.is_finite():
            return None
        if isinstance(serial, float) and not math.isfinite(serial):
            return None
        # Bounded before float(): the serial may carry an arbitrary exponent.
        if not 0 < serial <= MAX_EXCEL_SERIAL:
            return None
        try:
            return EXCEL_EPOCH + timedelta(days=float(serial))
        except OverflowError:
            return None

    @staticmethod
    def _to_decimal(value: Any, *, comma_decimal: bool) -> Decimal | None:
        """
        Parse a numeric cell. With *comma_decimal*, text may carry an "R$"
        prefix and Brazilian separators: "R$ 1.234,56" -> 1234.56.
        """

        if isinstance(value, bool):
            return None
        if isinstance(value, Decimal):
            return value
        if isinstance(value, int):
            return Decimal(value)
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return Decimal(repr(value))
        if not isinstance(value, str):
            return None

        raw = value.strip()
        if comma_decimal:
            raw = _CURRENCY_PREFIX_RE.sub("", raw)
            if "," in raw:
                raw = raw.replace(".", "").replace(",", ".")
        try:
            return Decimal(raw)
        except (InvalidOperation, ValueError):
            return None

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, float) and math.isnan(value):
            return True
        return str(value).strip() == ""

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        # Excel hands integral codes back as floats: 1001.0 -> "1001".
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
