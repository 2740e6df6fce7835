"""
Reference master-data parser.

Loads the list of references to audit for one material type (MP or PP).
The "referencia" column is required; "control" and the expected-quantity
column are optional.

Expected quantities arrive in either regional format:

    1.234,56   Spanish  (dot thousands, comma decimal)
    1,234.56   American (comma thousands, dot decimal)
    1,5        a single comma followed by at most two digits is a decimal
    1,234      otherwise commas are thousands separators

Row rules:
    - empty reference -> RowValidationError, row dropped
    - unparseable quantity -> RowValidationWarning, quantity 0
    - repeated reference (case-insensitive) -> RowValidationWarning, row kept
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from inventory_kernel.domain.dtos import MaterialType
from inventory_kernel.logging_config import get_logger

from inventory_ingestion.domain.normalizer import resolve_columns
from inventory_ingestion.domain.types import (
    AliasTable,
    ImportVariant,
    ParsedReference,
    ParseResult,
    ResultBuilder,
    RowValidationError,
    RowValidationWarning,
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

logger = get_logger("ingestion.parsers.reference")

ZERO = Decimal("0")


def parse_quantity(value: Any) -> Decimal | None:
    """Parse a quantity cell; empty is 0, unparseable is None."""
    if value is None or isinstance(value, bool):
        return ZERO if value is None else None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    text = str(value).strip().replace(" ", "")
    if not text:
        return ZERO

    last_comma = text.rfind(",")
    last_dot = text.rfind(".")
    if last_comma > -1 and last_dot > -1:
        if last_comma > last_dot:
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif last_comma > -1:
        if len(text) - last_comma - 1 <= 2 and text.count(",") == 1:
            text = text.replace(",", ".")
        else:
            text = text.replace(",", "")

    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_references(
    rows: Sequence[Row],
    material_type: MaterialType,
    table: AliasTable | None = None,
) -> ParseResult[ParsedReference]:
    """Validate and normalize reference master-data rows."""
    table = table or default_table(ImportVariant.REFERENCE)

    failure = structural_failure(rows, table, ImportVariant.REFERENCE)
    if failure is not None:
        logger.warning(
            "reference_sheet_rejected",
            extra={"reason": failure.structural_error.message, "material_type": material_type.value},
        )
        return failure

    columns = resolve_columns(collect_headers(rows), table)
    reference_header = columns["referencia"]
    quantity_header = columns.get("expected_quantity")

    result: ResultBuilder[ParsedReference] = ResultBuilder(ImportVariant.REFERENCE)
    seen: set[str] = set()

    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        referencia = cell_text(row.get(reference_header))
        if not referencia:
            result.errors.append(
                RowValidationError(
                    row_number=row_number,
                    field="referencia",
                    message=f"Fila {row_number}: La referencia está vacía",
                )
            )
            continue

        quantity = ZERO
        if quantity_header is not None:
            raw_quantity = row.get(quantity_header)
            parsed_quantity = parse_quantity(raw_quantity)
            if parsed_quantity is None:
                result.warnings.append(
                    RowValidationWarning(
                        row_number=row_number,
                        code="coerced",
                        message=(
                            f'Fila {row_number}: Cantidad no numérica "{cell_text(raw_quantity)}", '
                            "usando 0"
                        ),
                    )
                )
            else:
                quantity = parsed_quantity

        key = referencia.lower()
        if key in seen:
            result.warnings.append(
                RowValidationWarning(
                    row_number=row_number,
                    code="duplicate",
                    message=f'Fila {row_number}: Referencia "{referencia}" duplicada en el archivo',
                )
            )
        else:
            seen.add(key)

        result.accepted.append(
            ParsedReference(
                referencia=referencia,
                material_type=material_type,
                source_row_number=row_number,
                control=optional_text(row, columns.get("control")),
                expected_quantity=quantity,
            )
        )

    parsed = result.build(input_rows=len(rows))
    logger.info(
        "reference_sheet_parsed",
        extra={
            "material_type": material_type.value,
            "input_rows": len(rows),
            "accepted": len(parsed.accepted),
            "errors": len(parsed.errors),
            "warnings": len(parsed.warnings),
        },
    )
    return parsed
