"""
XLSX source adapter for audit spreadsheets.

Always reads the FIRST sheet of the workbook.  Row 1 is the header row;
every following non-blank row becomes one dict keyed by header text.

  - header cells are trimmed and whitespace-collapsed; blank headers become
    "Column_<n>" and repeated headers get a numeric suffix
  - integral floats become ints (Excel stores 1 as 1.0)
  - blank cells become the empty string
"""

from __future__ import annotations

import re
from typing import Any, Iterator
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from inventory_kernel.exceptions import SourceReadError
from inventory_kernel.logging_config import get_logger

from inventory_ingestion.adapters.base import Source, SourcePreview, source_name

logger = get_logger("ingestion.adapters.xlsx")

_PREVIEW_SAMPLE_SIZE = 5


def _normalize_header_cell(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _headers(header_row: tuple[Any, ...]) -> list[str]:
    headers: list[str] = []
    for c, value in enumerate(header_row):
        key = _normalize_header_cell(value) or f"Column_{c + 1}"
        base = key
        cnt = 0
        while key in headers:
            cnt += 1
            key = f"{base}_{cnt}"
        headers.append(key)
    # Drop trailing unnamed columns
    while headers and headers[-1].startswith("Column_") and not _normalize_header_cell(
        header_row[len(headers) - 1]
    ):
        headers.pop()
    return headers


class XlsxSourceAdapter:
    """Read the first sheet of an .xlsx workbook as one dict per row."""

    def _open(self, source: Source) -> Any:
        try:
            return openpyxl.load_workbook(source, read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, OSError, KeyError) as exc:
            logger.warning(
                "workbook_unreadable",
                extra={"source": source_name(source), "error": str(exc)},
            )
            raise SourceReadError(source_name(source), str(exc)) from exc

    def _rows(self, source: Source) -> tuple[str | None, list[str], list[dict[str, Any]]]:
        wb = self._open(source)
        try:
            if not wb.worksheets:
                return None, [], []
            sheet = wb.worksheets[0]
            raw_rows = sheet.iter_rows(values_only=True)
            header_row = next(raw_rows, None)
            if header_row is None:
                return sheet.title, [], []
            headers = _headers(header_row)

            records: list[dict[str, Any]] = []
            for raw in raw_rows:
                vals = [_cell_value(raw[c]) if c < len(raw) else "" for c in range(len(headers))]
                if not any(v != "" for v in vals):
                    continue
                records.append(dict(zip(headers, vals)))
            return sheet.title, headers, records
        finally:
            wb.close()

    def read(self, source: Source, options: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        sheet_name, _, records = self._rows(source)
        logger.debug(
            "workbook_read",
            extra={"source": source_name(source), "sheet": sheet_name, "rows": len(records)},
        )
        yield from records

    def preview(self, source: Source, options: dict[str, Any] | None = None) -> SourcePreview:
        sheet_name, headers, records = self._rows(source)
        return SourcePreview(
            row_count=len(records),
            columns=tuple(headers),
            sample_rows=tuple(records[:_PREVIEW_SAMPLE_SIZE]),
            sheet_name=sheet_name,
        )
