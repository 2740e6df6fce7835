"""
Shared parser plumbing: cell text, header collection and the structural precheck.

ZERO I/O. Rows arrive as header -> cell mappings (as yielded by a source
adapter); the first data row is logical row 2 because row 1 is the header.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from inventory_config import get_active_config
from inventory_ingestion.domain.normalizer import missing_required
from inventory_ingestion.domain.types import (
    AliasTable,
    ImportVariant,
    ParseResult,
    StructuralError,
)

Row = Mapping[str, Any]

FIRST_DATA_ROW = 2
EMPTY_SHEET_MESSAGE = "El archivo no contiene datos"


def cell_text(value: Any) -> str:
    """Cell value as trimmed text; None becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def optional_text(row: Row, header: str | None) -> str | None:
    """Trimmed cell under ``header``; empty or unresolved becomes None."""
    if header is None:
        return None
    return cell_text(row.get(header)) or None


def collect_headers(rows: Sequence[Row]) -> list[str]:
    """Ordered union of the keys of every row."""
    headers: dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            headers.setdefault(key, None)
    return list(headers)


def default_table(variant: ImportVariant) -> AliasTable:
    return AliasTable.from_profile(get_active_config().profile(variant.value))


def structural_failure(
    rows: Sequence[Row], table: AliasTable, variant: ImportVariant
) -> ParseResult | None:
    """Batch-fatal precheck: empty sheet or missing required columns.

    Every missing column is reported in the single returned error.
    """
    if not rows:
        return ParseResult(
            variant=variant,
            structural_error=StructuralError(message=EMPTY_SHEET_MESSAGE),
        )
    missing = missing_required(collect_headers(rows), table)
    if not missing:
        return None
    return ParseResult(
        variant=variant,
        structural_error=StructuralError(
            message="; ".join(column.missing_message for column in missing),
            missing_fields=tuple(column.field for column in missing),
        ),
        input_rows=len(rows),
    )
