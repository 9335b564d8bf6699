"""
app/services/spreadsheet_parser.py

Turns the bytes of one sales spreadsheet into a ParseResult.

Steps, in order:

    1. extract the period from the filename (gates the whole file)
    2. decode the first sheet into a DataFrame (pandas + openpyxl / xlrd)
    3. resolve header synonyms once for the file
    4. map, coerce and validate every data row

Row problems never abort the file; they become RowRejected entries and a
"Row N skipped" warning each.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from decimal import Decimal
from functools import lru_cache
from typing import Any
from zipfile import BadZipFile

import numpy as np
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from app.config import get_sales_ingestion_settings
from app.domain.errors import UnreadableFileError
from app.domain.sales import ParseResult, RowRejected, SalesRecordInput
from app.mappers.schema_mapper import SchemaMapper
from app.services.period_extractor import extract_period
from app.validators.sales_row_validator import SalesRowValidator

logger = logging.getLogger(__name__)

NO_VALID_ROWS_WARNING = "No valid rows found. Check the Product and Quantity columns."

_CSV_EXTENSIONS = (".csv",)
_WORKBOOK_EXTENSIONS = (".xlsx", ".xls")
_CSV_DELIMITERS = ",;\t"
_CSV_ENCODINGS = ("utf-8-sig", "latin-1")

_WORKBOOK_ERRORS = (
    ValueError,
    KeyError,
    OSError,
    ImportError,
    BadZipFile,
    InvalidFileException,
)


class SpreadsheetParser:
    """
    Parses one CSV/XLSX/XLS file into canonical sales records.
    """

    def __init__(
        self,
        *,
        mapper: SchemaMapper | None = None,
        validator: SalesRowValidator | None = None,
        allow_default_year: bool = False,
        max_validation_errors: int = 500,
        log_validation_errors: bool = True,
    ) -> None:
        self._mapper = mapper or SchemaMapper()
        self._validator = validator or SalesRowValidator()
        self._allow_default_year = allow_default_year
        self._max_validation_errors = max(1, max_validation_errors)
        self._log_validation_errors = log_validation_errors

    def parse(
        self,
        content: bytes,
        filename: str,
        *,
        source_file_key: str | None = None,
    ) -> ParseResult:
        """
        Parse *content* as the spreadsheet named *filename*.

        Raises PeriodNotFoundError before any byte is decoded when the
        filename has no month (or year), and UnreadableFileError when the
        bytes are neither a workbook nor delimited text.
        """

        period = extract_period(filename, allow_default_year=self._allow_default_year)
        frame = self._read_frame(content, filename)

        headers = [str(column) for column in frame.columns]
        mapping = self._mapper.resolve_mapping(headers)

        warnings: list[str] = []
        if mapping.missing_required:
            warnings.append(
                "Missing required column(s): "
                + ", ".join(mapping.missing_required)
                + f". Found: {', '.join(mapping.source_headers) or 'none'}"
                + (
                    f" (unrecognized: {', '.join(mapping.unmapped_headers)})."
                    if mapping.unmapped_headers
                    else "."
                )
            )
            logger.warning(
                "Required columns not found filename=%r missing=%s unrecognized=%s",
                filename,
                mapping.missing_required,
                mapping.unmapped_headers,
            )

        records: list[SalesRecordInput] = []
        rejections: list[RowRejected] = []
        read = 0
        noted = 0

        for raw_row in self._iter_rows(frame, headers):
            if self._validator.is_completely_empty_row(raw_row):
                continue
            read += 1

            mapped_row = self._mapper.map_row(raw_row=raw_row, mapping=mapping)
            row_notes: list[str] = []
            record, row_errors = self._validator.validate_mapped_row(
                mapped_row=mapped_row,
                row_number=read,
                period=period,
                source_filename=filename,
                source_file_key=source_file_key,
                notes=row_notes,
            )
            if row_errors:
                self._record_rejection(
                    filename=filename,
                    mapped_row=mapped_row,
                    row_errors=row_errors,
                    warnings=warnings,
                    rejections=rejections,
                )
                continue
            if record is not None:
                records.append(record)
            for note in row_notes:
                if self._log_validation_errors:
                    logger.warning("Spreadsheet value dropped filename=%r %s", filename, note)
                if noted < self._max_validation_errors:
                    warnings.append(note)
                    noted += 1

        if not records:
            warnings.append(NO_VALID_ROWS_WARNING)

        self._log_summary(filename=filename, read=read, records=records)
        return ParseResult(
            filename=filename,
            period=period,
            read=read,
            records=tuple(records),
            warnings=tuple(warnings),
            rejections=tuple(rejections),
        )

    def to_text(self, content: bytes, filename: str) -> str:
        """
        First sheet of the file as comma-separated text, header included.
        """

        return self._read_frame(content, filename).to_csv(index=False)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def _read_frame(self, content: bytes, filename: str) -> pd.DataFrame:
        if not content:
            raise UnreadableFileError("File is empty.", filename=filename)

        lowered = filename.strip().lower()
        if lowered.endswith(_CSV_EXTENSIONS):
            return self._read_csv(content, filename)
        if lowered.endswith(_WORKBOOK_EXTENSIONS):
            return self._read_workbook(content, filename)

        # Unknown extension: a workbook is the common case, text the fallback.
        try:
            return self._read_workbook(content, filename)
        except UnreadableFileError:
            return self._read_csv(content, filename)

    @staticmethod
    def _read_workbook(content: bytes, filename: str) -> pd.DataFrame:
        engine = "xlrd" if filename.strip().lower().endswith(".xls") else "openpyxl"
        try:
            return pd.read_excel(
                io.BytesIO(content),
                sheet_name=0,
                dtype=object,
                engine=engine,
            )
        except _WORKBOOK_ERRORS as exc:
            raise UnreadableFileError(
                f'File "{filename}" is not a readable spreadsheet: {exc}',
                filename=filename,
            ) from exc

    @staticmethod
    def _read_csv(content: bytes, filename: str) -> pd.DataFrame:
        if b"\x00" in content:
            raise UnreadableFileError(
                f'File "{filename}" is binary, not delimited text.',
                filename=filename,
            )

        text = _decode_text(content)
        if text is None or not text.strip():
            raise UnreadableFileError(
                f'File "{filename}" has no readable text.',
                filename=filename,
            )

        try:
            return pd.read_csv(
                io.StringIO(text),
                sep=_sniff_delimiter(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except (ValueError, csv.Error) as exc:
            # pandas' ParserError and EmptyDataError both derive from ValueError.
            raise UnreadableFileError(
                f'File "{filename}" is not valid delimited text: {exc}',
                filename=filename,
            ) from exc

    @staticmethod
    def _iter_rows(frame: pd.DataFrame, headers: list[str]):
        """
        Yield one dict per data row keyed by the original header text.
        Every header is present on every row; missing cells are None.
        """

        for values in frame.itertuples(index=False, name=None):
            yield {header: _clean_cell(value) for header, value in zip(headers, values)}

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _record_rejection(
        self,
        *,
        filename: str,
        mapped_row: dict[str, Any],
        row_errors: list[RowRejected],
        warnings: list[str],
        rejections: list[RowRejected],
    ) -> None:
        first = row_errors[0]
        reason = "; ".join(f"{error.column}: {error.message}" for error in row_errors)
        warning = (
            f"Row {first.row_number} skipped: "
            f"product={_display(mapped_row.get('product'))}, "
            f"quantity={_display(mapped_row.get('quantity'))} ({reason})"
        )

        if self._log_validation_errors:
            logger.warning("Spreadsheet row rejected filename=%r %s", filename, warning)

        if len(rejections) < self._max_validation_errors:
            warnings.append(warning)
            rejections.extend(row_errors)

    @staticmethod
    def _log_summary(*, filename: str, read: int, records: list[SalesRecordInput]) -> None:
        total_quantity = sum(record.quantity for record in records)
        total_revenue = sum(
            (record.total_revenue for record in records if record.total_revenue is not None),
            Decimal("0"),
        )
        logger.info(
            "Spreadsheet parsed filename=%r read=%s kept=%s products=%s "
            "total_quantity=%s total_revenue=%s",
            filename,
            read,
            len(records),
            len({record.product for record in records}),
            total_quantity,
            total_revenue,
        )


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _decode_text(content: bytes) -> str | None:
    for encoding in _CSV_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return None


def _sniff_delimiter(text: str) -> str:
    """
    Pick the delimiter among comma, semicolon and tab from the header line.
    """

    header_line = next((line for line in text.splitlines() if line.strip()), "")
    try:
        return csv.Sniffer().sniff(header_line, delimiters=_CSV_DELIMITERS).delimiter
    except csv.Error:
        counts = {delimiter: header_line.count(delimiter) for delimiter in _CSV_DELIMITERS}
        best = max(counts, key=lambda delimiter: counts[delimiter])
        return best if counts[best] else ","


def _clean_cell(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _display(value: Any) -> str:
    if value is None:
        return '""'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@lru_cache(maxsize=1)
def get_spreadsheet_parser() -> SpreadsheetParser:
    """
    Build and cache the parser with env-driven settings.
    """

    settings = get_sales_ingestion_settings()
    return SpreadsheetParser(
        allow_default_year=settings.allow_default_year,
        max_validation_errors=settings.max_validation_errors,
        log_validation_errors=settings.log_validation_errors,
    )
