"""Tests for header normalization and alias resolution."""

from hypothesis import given, settings
from hypothesis import strategies as st

from inventory_ingestion.domain.normalizer import (
    find_column,
    find_column_value,
    match_alias,
    missing_required,
    normalize_column_name,
    resolve_columns,
)
from inventory_ingestion.domain.types import ImportVariant
from inventory_ingestion.parsers.base import default_table


class TestNormalizeColumnName:
    def test_lowercases_strips_accents_and_whitespace(self):
        assert normalize_column_name("  Ubicación Detallada ") == "ubicacion detallada"
        assert normalize_column_name("MÉTODO CONTEO") == "metodo conteo"

    def test_non_string_headers(self):
        assert normalize_column_name(2024) == "2024"

    @settings(max_examples=200)
    @given(st.text(alphabet=st.characters(max_codepoint=0x24F)))
    def test_idempotent(self, text):
        once = normalize_column_name(text)
        assert normalize_column_name(once) == once


class TestAliasMatching:
    def test_exact_or_substring(self):
        assert match_alias("Observaciones Generales", ("observaciones",)) == "observaciones"
        assert match_alias("Cantidad", ("cant.total", "cantidad")) == "cantidad"
        assert match_alias("Zona", ("ubicacion",)) is None

    def test_first_header_wins(self):
        headers = ["Obs", "Observaciones"]
        assert find_column(headers, ("observaciones", "obs")) == "Obs"

    def test_find_column_value(self):
        row = {"Nombre Completo": "Ana", "Turno": 2}
        assert find_column_value(row, ("nombre",)) == "Ana"
        assert find_column_value(row, ("zona",)) is None


class TestResolveColumns:
    def test_required_reference_not_captured_by_reference_point(self):
        table = default_table(ImportVariant.LOCATION)
        headers = ["Punto Referencia", "Referencia", "Ubicación", "Ubicación Detallada"]
        columns = resolve_columns(headers, table)
        assert columns["master_reference"] == "Referencia"
        assert columns["punto_referencia"] == "Punto Referencia"
        assert columns["location_detail"] == "Ubicación Detallada"
        assert columns["location_name"] == "Ubicación"

    def test_unresolved_optional_fields_are_absent(self):
        table = default_table(ImportVariant.LOCATION)
        columns = resolve_columns(["REF"], table)
        assert columns == {"master_reference": "REF"}

    def test_required_needs_exact_match(self):
        table = default_table(ImportVariant.LOCATION)
        missing = missing_required(["Referencia Interna"], table)
        assert [c.field for c in missing] == ["master_reference"]

    def test_every_missing_required_column_reported(self):
        table = default_table(ImportVariant.WORKER)
        missing = missing_required(["Zona"], table)
        assert [c.field for c in missing] == ["full_name", "turno"]
