"""
app/services/period_extractor.py

Derives the sales period (month, year) of a spreadsheet from its filename.

The month is never read from a data column: a monthly export named
"Fevereiro-2025.xlsx" belongs to Fevereiro/2025 whatever its rows say.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from app.domain.errors import PeriodNotFoundError
from app.domain.sales import Period
from app.mappers.schema_mapper import strip_diacritics
from db.models.sales_record import MAX_YEAR, MIN_YEAR, SalesMonth

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"\.(xlsx?|csv)$", re.IGNORECASE)
_YEAR_RE = re.compile(r"(20\d{2}|19\d{2})")

# Normalized search token -> canonical month, in calendar order.
_MONTH_TOKENS: tuple[tuple[str, str], ...] = tuple(
    (strip_diacritics(month.lower()), month) for month in SalesMonth.ORDERED
)


def normalize_filename(filename: str) -> str:
    """
    Strip the spreadsheet extension, lower-case and remove accents.
    """

    stem = _EXTENSION_RE.sub("", filename.strip())
    return strip_diacritics(stem.lower())


def find_month(normalized_name: str) -> str | None:
    """
    Return the first canonical month (calendar order) whose name occurs
    anywhere in *normalized_name*.
    """

    for token, month in _MONTH_TOKENS:
        if token in normalized_name:
            return month
    return None


def find_year(normalized_name: str) -> int | None:
    match = _YEAR_RE.search(normalized_name)
    return int(match.group(1)) if match else None


def extract_period(filename: str, *, allow_default_year: bool = False) -> Period:
    """
    Extract the sales period from *filename*.

    Raises PeriodNotFoundError when no month token is present, and when no
    year is present unless *allow_default_year* is set, in which case the
    current UTC year is used. A year outside the storable range is
    rejected the same way, so no file is accepted whose rows would all be
    dropped at ingestion.
    """

    normalized = normalize_filename(filename)
    month = find_month(normalized)
    if month is None:
        raise PeriodNotFoundError(
            f'Could not detect the month in file name "{filename}". '
            f"The name must contain a month ({', '.join(SalesMonth.ORDERED)}), "
            'e.g. "Janeiro 2025.xlsx", "Fevereiro-2025.xlsx", "marco_2025.csv".',
            filename=filename,
        )

    year = find_year(normalized)
    if year is None:
        if not allow_default_year:
            raise PeriodNotFoundError(
                f'Could not detect a 4-digit year in file name "{filename}".',
                filename=filename,
            )
        year = datetime.now(tz=timezone.utc).year
        logger.warning(
            "No year in filename=%r; defaulting to current year %s",
            filename,
            year,
        )

    if not MIN_YEAR <= year <= MAX_YEAR:
        raise PeriodNotFoundError(
            f'Year {year} in file name "{filename}" is outside {MIN_YEAR}..{MAX_YEAR}.',
            filename=filename,
        )

    logger.debug("Period extracted filename=%r month=%s year=%s", filename, month, year)
    return Period(month=month, year=year)
