"""
app/mappers package marker.
"""

from app.mappers.schema_mapper import (
    CANONICAL_FIELDS,
    DEFAULT_COLUMN_SYNONYMS,
    REQUIRED_CANONICAL_FIELDS,
    MappingResolution,
    SchemaMapper,
    normalize_header,
    strip_diacritics,
)

__all__ = [
    "CANONICAL_FIELDS",
    "DEFAULT_COLUMN_SYNONYMS",
    "REQUIRED_CANONICAL_FIELDS",
    "MappingResolution",
    "SchemaMapper",
    "normalize_header",
    "strip_diacritics",
]
