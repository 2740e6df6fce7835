"""Tests for the location, worker and reference sheet parsers."""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from inventory_ingestion.domain.types import ImportVariant
from inventory_ingestion.parsers import parse_locations, parse_references, parse_workers
from inventory_ingestion.parsers.base import EMPTY_SHEET_MESSAGE
from inventory_ingestion.parsers.reference import parse_quantity
from inventory_ingestion.parsers.worker import parse_shift
from inventory_kernel.domain.dtos import MaterialType


class TestParseLocations:
    def test_empty_reference_rejects_row_two(self):
        result = parse_locations([{"Referencia": ""}])
        assert result.accepted == ()
        assert len(result.errors) == 1
        assert result.errors[0].row_number == 2
        assert result.errors[0].message == "Fila 2: La referencia está vacía"
        assert result.is_total_failure

    def test_accepts_and_maps_optional_columns(self):
        rows = [
            {
                "REF": "A-1",
                "Subcategoría": "Tornillos",
                "Ubicación": "ESTANTE-1",
                "Ubicación Detallada": "Nivel 3",
                "Punto Referencia": "Puerta",
                "Método Conteo": "Manual",
                "Observaciones": "",
            }
        ]
        result = parse_locations(rows)
        [location] = result.accepted
        assert location.master_reference == "A-1"
        assert location.subcategoria == "Tornillos"
        assert location.location_name == "ESTANTE-1"
        assert location.location_detail == "Nivel 3"
        assert location.punto_referencia == "Puerta"
        assert location.metodo_conteo == "Manual"
        assert location.observaciones is None
        assert location.source_row_number == 2

    def test_english_detail_header_not_taken_as_name(self):
        result = parse_locations(
            [{"Referencia": "R1", "Location": "RACK-4", "Location Detail": "Nivel 3"}]
        )
        [location] = result.accepted
        assert location.location_name == "RACK-4"
        assert location.location_detail == "Nivel 3"

    def test_detail_header_alone(self):
        [location] = parse_locations([{"Referencia": "R1", "Location Detail": "Nivel 3"}]).accepted
        assert location.location_detail == "Nivel 3"
        assert location.location_name is None

    def test_duplicate_combination_warns_and_keeps_row(self):
        rows = [
            {"Referencia": "A-1", "Ubicación Detallada": "Nivel 1"},
            {"Referencia": "a-1", "Ubicación Detallada": "NIVEL 1"},
            {"Referencia": "A-1", "Ubicación Detallada": ""},
        ]
        result = parse_locations(rows)
        assert len(result.accepted) == 3
        assert len(result.warnings) == 1
        assert result.warnings[0].row_number == 3
        assert result.warnings[0].message == (
            "Fila 3: Combinación duplicada (a-1 + NIVEL 1 + sin punto ref)"
        )

    def test_missing_reference_column_is_structural(self):
        result = parse_locations([{"Ubicación": "X"}])
        assert result.is_structural_failure
        assert result.structural_error.message == 'No se encontró la columna "Referencia"'
        assert result.accepted == ()

    def test_empty_sheet_is_structural(self):
        result = parse_locations([])
        assert result.structural_error.message == EMPTY_SHEET_MESSAGE

    def test_partial_failure_keeps_valid_rows(self):
        rows = [{"Referencia": "A-1"}, {"Referencia": "  "}, {"Referencia": "A-2"}]
        result = parse_locations(rows)
        assert [loc.master_reference for loc in result.accepted] == ["A-1", "A-2"]
        assert [e.row_number for e in result.errors] == [3]
        assert not result.is_total_failure

    @settings(max_examples=100)
    @given(
        st.lists(
            st.one_of(st.just(""), st.just("   "), st.text(min_size=1, max_size=8)),
            min_size=1,
            max_size=30,
        )
    )
    def test_row_accounting(self, references):
        rows = [{"Referencia": value} for value in references]
        result = parse_locations(rows)
        assert len(result.accepted) + len(result.errors) == len(rows)


class TestParseWorkers:
    def test_invalid_shift_coerced_to_one(self):
        result = parse_workers([{"nombre": "Ana", "turno": "5"}])
        [worker] = result.accepted
        assert worker.turno == 1
        assert len(result.warnings) == 1
        assert "5" in result.warnings[0].message
        assert result.warnings[0].message == 'Fila 2: Turno inválido "5", usando turno 1'

    def test_shift_three_is_not_importable(self):
        result = parse_workers([{"nombre": "Ana", "turno": 3}])
        assert result.accepted[0].turno == 1
        assert len(result.warnings) == 1

    def test_empty_shift_defaults_without_warning(self):
        result = parse_workers([{"nombre": "Ana", "turno": ""}])
        assert result.accepted[0].turno == 1
        assert result.warnings == ()

    def test_accent_and_case_insensitive_duplicate(self):
        result = parse_workers(
            [{"nombre": "Juan Pérez", "turno": 1}, {"nombre": "juan perez", "turno": 2}]
        )
        assert len(result.accepted) == 2
        assert len(result.warnings) == 1
        assert result.warnings[0].message == 'Fila 3: "juan perez" está duplicado en el archivo'

    def test_empty_name_rejected(self):
        result = parse_workers([{"full_name": "", "turno": 1}, {"full_name": "Ana", "turno": 2}])
        assert [e.message for e in result.errors] == ["Fila 2: El nombre está vacío"]
        assert [(w.full_name, w.turno) for w in result.accepted] == [("Ana", 2)]

    def test_both_required_columns_reported(self):
        result = parse_workers([{"Zona": "A"}])
        assert result.structural_error.missing_fields == ("full_name", "turno")
        assert 'No se encontró la columna "nombre" o "full_name"' in result.structural_error.message
        assert 'No se encontró la columna "turno"' in result.structural_error.message

    @pytest.mark.parametrize(
        "value, expected",
        [(1, 1), ("2", 2), (2.0, 2), ("2.0", 2), ("1.5", None), ("x", None), (True, None)],
    )
    def test_parse_shift(self, value, expected):
        assert parse_shift(value) == expected


class TestParseReferences:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.234,56", Decimal("1234.56")),
            ("1,234.56", Decimal("1234.56")),
            ("1,5", Decimal("1.5")),
            ("1,234", Decimal("1234")),
            ("", Decimal("0")),
            (None, Decimal("0")),
            (12, Decimal("12")),
            (2.5, Decimal("2.5")),
            ("abc", None),
        ],
    )
    def test_parse_quantity(self, raw, expected):
        assert parse_quantity(raw) == expected

    def test_references_with_control_and_quantity(self):
        rows = [
            {"referencia": "R-1", "control": "C1", "cant.total": "1.000,5"},
            {"referencia": "R-2", "control": "", "cant.total": "n/a"},
        ]
        result = parse_references(rows, MaterialType.RAW)
        first, second = result.accepted
        assert first.control == "C1" and first.expected_quantity == Decimal("1000.5")
        assert second.control is None and second.expected_quantity == Decimal("0")
        assert result.warnings[0].message == 'Fila 3: Cantidad no numérica "n/a", usando 0'
        assert result.variant is ImportVariant.REFERENCE

    def test_duplicate_reference_warns(self):
        result = parse_references([{"referencia": "R-1"}, {"referencia": "r-1"}], MaterialType.IN_PROCESS)
        assert len(result.accepted) == 2
        assert result.warnings[0].message == 'Fila 3: Referencia "r-1" duplicada en el archivo'
