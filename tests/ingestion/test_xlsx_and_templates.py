"""Tests for the xlsx source adapter and the import templates."""

import io
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook

from inventory_ingestion.adapters import XlsxSourceAdapter
from inventory_ingestion.domain.types import ImportVariant
from inventory_ingestion.parsers import parse_locations, parse_workers
from inventory_ingestion.templates import (
    LOCATION_TEMPLATE,
    WORKER_TEMPLATE,
    build_template,
    template_bytes,
    write_template,
)
from inventory_kernel.exceptions import SourceReadError


def _workbook(path: Path, rows: list[list]) -> Path:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


class TestXlsxSourceAdapter:
    def test_read_first_sheet_as_dicts(self, tmp_path):
        path = _workbook(
            tmp_path / "ubicaciones.xlsx",
            [["Referencia", " Ubicación "], ["A-1", "E-1"], [None, None], ["A-2", 3.0]],
        )
        rows = list(XlsxSourceAdapter().read(path))
        assert rows == [
            {"Referencia": "A-1", "Ubicación": "E-1"},
            {"Referencia": "A-2", "Ubicación": 3},
        ]

    def test_duplicate_headers_are_suffixed(self, tmp_path):
        path = _workbook(tmp_path / "dup.xlsx", [["nombre", "nombre", "turno"], ["Ana", "B", 1]])
        rows = list(XlsxSourceAdapter().read(path))
        assert rows == [{"nombre": "Ana", "nombre_1": "B", "turno": 1}]

    def test_preview(self, tmp_path):
        path = _workbook(tmp_path / "p.xlsx", [["nombre", "turno"], ["Ana", 1], ["Beto", 2]])
        preview = XlsxSourceAdapter().preview(path)
        assert preview.row_count == 2
        assert preview.columns == ("nombre", "turno")
        assert preview.sheet_name == "Sheet"
        assert not preview.is_empty

    def test_header_only_sheet_yields_nothing(self, tmp_path):
        path = _workbook(tmp_path / "h.xlsx", [["Referencia"]])
        assert list(XlsxSourceAdapter().read(path)) == []

    def test_unreadable_file_raises_source_read_error(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a workbook")
        with pytest.raises(SourceReadError) as exc_info:
            list(XlsxSourceAdapter().read(path))
        assert exc_info.value.source == "broken.xlsx"

    def test_reads_from_binary_stream(self):
        rows = list(XlsxSourceAdapter().read(io.BytesIO(template_bytes(ImportVariant.WORKER))))
        assert rows[0] == {"nombre": "Juan Pérez", "turno": 1}


class TestTemplates:
    def test_location_template_layout(self):
        ws = build_template(ImportVariant.LOCATION).active
        assert ws.title == "Ubicaciones"
        assert [c.value for c in ws[1]] == list(LOCATION_TEMPLATE.headers)
        assert ws["A1"].font.bold
        assert ws.column_dimensions["E"].width == 20
        assert ws.max_row == 1 + len(LOCATION_TEMPLATE.rows)

    def test_location_template_is_accepted_by_parser(self, tmp_path):
        path = write_template(ImportVariant.LOCATION, tmp_path)
        assert path.name == "plantilla_ubicaciones.xlsx"
        result = parse_locations(list(XlsxSourceAdapter().read(path)))
        assert result.errors == ()
        assert result.warnings == ()
        assert len(result.accepted) == 3
        third = result.accepted[2]
        assert third.master_reference == "REF-002"
        assert third.location_name == "BODEGA-3"
        assert third.location_detail is None
        assert third.metodo_conteo == "Báscula"

    def test_worker_template_is_accepted_by_parser(self, tmp_path):
        path = write_template(ImportVariant.WORKER, tmp_path)
        wb = load_workbook(path)
        assert wb.active.title == "Operarios"
        result = parse_workers(list(XlsxSourceAdapter().read(path)))
        assert [(w.full_name, w.turno) for w in result.accepted] == [
            (name, turno) for name, turno in WORKER_TEMPLATE.rows
        ]
        assert result.warnings == ()

    def test_as_dicts_matches_parser_input(self):
        result = parse_locations(LOCATION_TEMPLATE.as_dicts())
        assert len(result.accepted) == len(LOCATION_TEMPLATE.rows)

    def test_no_reference_template(self):
        with pytest.raises(ValueError):
            build_template(ImportVariant.REFERENCE)
