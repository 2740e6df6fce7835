"""
Location sheet parser.

One row per (reference, physical slot).  The reference column is required
and must normalize exactly to one of its aliases; every other column is
optional and resolved through the alias table.

Row rules:
    - empty reference -> RowValidationError, row dropped
    - repeated (reference, detail, reference point), case-insensitive ->
      RowValidationWarning, row kept
"""

from __future__ import annotations

from collections.abc import Sequence

from inventory_kernel.logging_config import get_logger

from inventory_ingestion.domain.normalizer import resolve_columns
from inventory_ingestion.domain.types import (
    AliasTable,
    ImportVariant,
    ParsedLocation,
    ParseResult,
    RowValidationError,
    RowValidationWarning,
    ResultBuilder,
)
from inventory_ingestion.parsers.base import (
    FIRST_DATA_ROW,
    Row,
    cell_text,
    collect_headers,
    default_table,
    optional_text,
    structural_failure,
)

logger = get_logger("ingestion.parsers.location")

_OPTIONAL_FIELDS = (
    "subcategoria",
    "observaciones",
    "location_name",
    "location_detail",
    "punto_referencia",
    "metodo_conteo",
)


def duplicate_key(referencia: str, detail: str | None, punto: str | None) -> str:
    return f"{referencia.lower()}|{(detail or '').lower()}|{(punto or '').lower()}"


def parse_locations(
    rows: Sequence[Row], table: AliasTable | None = None
) -> ParseResult[ParsedLocation]:
    """Validate and normalize location rows."""
    table = table or default_table(ImportVariant.LOCATION)

    failure = structural_failure(rows, table, ImportVariant.LOCATION)
    if failure is not None:
        logger.warning(
            "location_sheet_rejected",
            extra={"reason": failure.structural_error.message, "input_rows": len(rows)},
        )
        return failure

    columns = resolve_columns(collect_headers(rows), table)
    reference_header = columns["master_reference"]

    result: ResultBuilder[ParsedLocation] = ResultBuilder(ImportVariant.LOCATION)
    seen: set[str] = set()

    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        referencia = cell_text(row.get(reference_header))
        if not referencia:
            result.errors.append(
                RowValidationError(
                    row_number=row_number,
                    field="master_reference",
                    message=f"Fila {row_number}: La referencia está vacía",
                )
            )
            continue

        values = {name: optional_text(row, columns.get(name)) for name in _OPTIONAL_FIELDS}

        key = duplicate_key(referencia, values["location_detail"], values["punto_referencia"])
        if key in seen:
            result.warnings.append(
                RowValidationWarning(
                    row_number=row_number,
                    code="duplicate",
                    message=(
                        f"Fila {row_number}: Combinación duplicada ({referencia} + "
                        f"{values['location_detail'] or 'sin detalle'} + "
                        f"{values['punto_referencia'] or 'sin punto ref'})"
                    ),
                )
            )
        else:
            seen.add(key)

        result.accepted.append(
            ParsedLocation(
                master_reference=referencia,
                source_row_number=row_number,
                **values,
            )
        )

    parsed = result.build(input_rows=len(rows))
    logger.info(
        "location_sheet_parsed",
        extra={
            "input_rows": len(rows),
            "accepted": len(parsed.accepted),
            "errors": len(parsed.errors),
            "warnings": len(parsed.warnings),
        },
    )
    return parsed
