"""
Worker sheet parser.

Both the name column and the shift (turno) column are required; each must
normalize exactly to one of its aliases.  When both are missing, both are
reported.

Row rules:
    - empty name -> RowValidationError, row dropped
    - shift is optional; an empty cell means shift 1.  A value that is not
      the integer 1 or 2 -> RowValidationWarning, shift coerced to 1
    - repeated name (case- and accent-insensitive) -> RowValidationWarning,
      row kept
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from inventory_kernel.logging_config import get_logger

from inventory_ingestion.domain.normalizer import normalize_column_name, resolve_columns
from inventory_ingestion.domain.types import (
    AliasTable,
    ImportVariant,
    ParsedWorker,
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
    structural_failure,
)

logger = get_logger("ingestion.parsers.worker")

DEFAULT_SHIFT = 1
IMPORTABLE_SHIFTS = frozenset({1, 2})


def parse_shift(value: Any) -> int | None:
    """Integer value of a shift cell, or None when it is not an integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = cell_text(value)
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    return int(number)


def parse_workers(
    rows: Sequence[Row], table: AliasTable | None = None
) -> ParseResult[ParsedWorker]:
    """Validate and normalize worker rows."""
    table = table or default_table(ImportVariant.WORKER)

    failure = structural_failure(rows, table, ImportVariant.WORKER)
    if failure is not None:
        logger.warning(
            "worker_sheet_rejected",
            extra={
                "reason": failure.structural_error.message,
                "missing_fields": list(failure.structural_error.missing_fields),
            },
        )
        return failure

    columns = resolve_columns(collect_headers(rows), table)
    name_header = columns["full_name"]
    shift_header = columns["turno"]

    result: ResultBuilder[ParsedWorker] = ResultBuilder(ImportVariant.WORKER)
    seen: set[str] = set()

    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        full_name = cell_text(row.get(name_header))
        if not full_name:
            result.errors.append(
                RowValidationError(
                    row_number=row_number,
                    field="full_name",
                    message=f"Fila {row_number}: El nombre está vacío",
                )
            )
            continue

        turno = DEFAULT_SHIFT
        raw_shift = row.get(shift_header)
        if cell_text(raw_shift):
            shift = parse_shift(raw_shift)
            if shift in IMPORTABLE_SHIFTS:
                turno = shift
            else:
                result.warnings.append(
                    RowValidationWarning(
                        row_number=row_number,
                        code="coerced",
                        message=(
                            f'Fila {row_number}: Turno inválido "{cell_text(raw_shift)}", '
                            f"usando turno {DEFAULT_SHIFT}"
                        ),
                    )
                )

        key = normalize_column_name(full_name)
        if key in seen:
            result.warnings.append(
                RowValidationWarning(
                    row_number=row_number,
                    code="duplicate",
                    message=f'Fila {row_number}: "{full_name}" está duplicado en el archivo',
                )
            )
        else:
            seen.add(key)

        result.accepted.append(
            ParsedWorker(full_name=full_name, turno=turno, source_row_number=row_number)
        )

    parsed = result.build(input_rows=len(rows))
    logger.info(
        "worker_sheet_parsed",
        extra={
            "input_rows": len(rows),
            "accepted": len(parsed.accepted),
            "errors": len(parsed.errors),
            "warnings": len(parsed.warnings),
        },
    )
    return parsed
