"""
app/mappers/schema_mapper.py

Header normalization and synonym mapping for sales spreadsheets.

Spreadsheet headers arrive with arbitrary casing, accents, spaces and
underscores ("Preço Unitário", "preco_unitario", "PRECO UNITARIO").
Every header is reduced to a bare ASCII key and matched exactly against
an ordered synonym list per canonical field. There is no fuzzy or
partial matching: an unknown header is simply ignored.
"""

from __future__ import annotations

import unicodedata
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from app.domain.sales import SalesRecordInput
from db.models.sales_record import SalesRecord

CANONICAL_FIELDS: tuple[str, ...] = (
    "transaction_date",
    "transaction_id",
    "product",
    "category",
    "region",
    "quantity",
    "unit_price",
    "total_revenue",
)

REQUIRED_CANONICAL_FIELDS: tuple[str, ...] = (
    "product",
    "quantity",
)

# Order matters: the first synonym carrying a value wins.
DEFAULT_COLUMN_SYNONYMS: dict[str, tuple[str, ...]] = {
    "transaction_date": ("data", "date"),
    "transaction_id": ("idtransacao", "id_transacao", "transactionid"),
    "product": ("produto", "product"),
    "category": ("categoria", "category"),
    "region": ("regiao", "region"),
    "quantity": ("quantidade", "qtd", "quantity", "units"),
    "unit_price": ("precounitario", "preco_unitario", "precunitario", "price"),
    "total_revenue": ("receitatotal", "receita_total", "revenue"),
}


def strip_diacritics(value: str) -> str:
    """
    Drop combining marks after NFD decomposition ("Março" -> "Marco").
    """

    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_header(header: Any) -> str:
    """
    Lower-case, strip accents and drop every non-alphanumeric character.
    """

    lowered = strip_diacritics(str(header).lower())
    return "".join(ch for ch in lowered if ch.isascii() and ch.isalnum())


@dataclass(frozen=True)
class MappingResolution:
    """
    Canonical field -> source headers, in synonym priority order.
    """

    canonical_to_sources: dict[str, tuple[str, ...]]
    source_headers: tuple[str, ...]

    @property
    def missing_required(self) -> tuple[str, ...]:
        return tuple(
            field for field in REQUIRED_CANONICAL_FIELDS if not self.canonical_to_sources.get(field)
        )

    @property
    def unmapped_headers(self) -> tuple[str, ...]:
        used = {source for sources in self.canonical_to_sources.values() for source in sources}
        return tuple(header for header in self.source_headers if header not in used)


class SchemaMapper:
    """
    Resolves spreadsheet headers into canonical sales fields and maps rows
    into a fixed-shape dict holding every canonical field.
    """

    def __init__(self, *, synonyms: Mapping[str, Sequence[str]] | None = None) -> None:
        self._synonyms: dict[str, tuple[str, ...]] = {
            canonical: tuple(values)
            for canonical, values in (synonyms or DEFAULT_COLUMN_SYNONYMS).items()
        }

    def resolve_mapping(self, headers: Sequence[Any]) -> MappingResolution:
        """
        Resolve canonical fields against the header row of one file.
        """

        source_headers = tuple(str(header) for header in headers if str(header).strip())
        # Later duplicates of the same normalized header replace earlier ones.
        normalized_header_lookup: dict[str, str] = {
            normalize_header(header): header
            for header in source_headers
            if normalize_header(header)
        }

        resolved: dict[str, tuple[str, ...]] = {}
        for canonical_field in CANONICAL_FIELDS:
            matches: list[str] = []
            for synonym in self._synonyms.get(canonical_field, ()):
                match = normalized_header_lookup.get(normalize_header(synonym))
                if match is not None and match not in matches:
                    matches.append(match)
            resolved[canonical_field] = tuple(matches)

        return MappingResolution(
            canonical_to_sources=resolved,
            source_headers=source_headers,
        )

    def map_row(
        self,
        *,
        raw_row: Mapping[str, Any],
        mapping: MappingResolution,
    ) -> dict[str, Any]:
        """
        Map one source row into canonical raw values. Unmatched fields are None.
        """

        mapped: dict[str, Any] = {}
        for canonical_field in CANONICAL_FIELDS:
            value = None
            for source_column in mapping.canonical_to_sources.get(canonical_field, ()):
                candidate = raw_row.get(source_column)
                if candidate is None or (isinstance(candidate, str) and not candidate.strip()):
                    continue
                value = candidate
                break
            mapped[canonical_field] = value
        return mapped

    @staticmethod
    def to_sales_record(value: SalesRecordInput, *, owner_id: uuid.UUID) -> SalesRecord:
        """
        Convert a validated sales row into a model object owned by *owner_id*.
        """

        return SalesRecord(
            owner_id=owner_id,
            product=value.product,
            quantity=value.quantity,
            unit_price=value.unit_price,
            total_revenue=value.total_revenue,
            month=value.month,
            year=value.year,
            transaction_date=value.transaction_date,
            transaction_id=value.transaction_id,
            category=value.category,
            region=value.region,
            source_filename=value.source_filename,
            source_file_key=value.source_file_key,
        )
