"""Pure import types and the column normalizer. ZERO I/O."""

from inventory_ingestion.domain.normalizer import (
    alias_matches,
    find_column,
    find_column_value,
    find_exact_column,
    match_alias,
    missing_required,
    normalize_column_name,
    resolve_columns,
)
from inventory_ingestion.domain.types import (
    AliasTable,
    FieldAlias,
    ImportVariant,
    ParsedLocation,
    ParsedReference,
    ParsedWorker,
    ParseResult,
    RequiredColumn,
    RowValidationError,
    RowValidationWarning,
    StructuralError,
)

__all__ = [
    "AliasTable",
    "FieldAlias",
    "ImportVariant",
    "ParseResult",
    "ParsedLocation",
    "ParsedReference",
    "ParsedWorker",
    "RequiredColumn",
    "RowValidationError",
    "RowValidationWarning",
    "StructuralError",
    "alias_matches",
    "find_column",
    "find_column_value",
    "find_exact_column",
    "match_alias",
    "missing_required",
    "normalize_column_name",
    "resolve_columns",
]
