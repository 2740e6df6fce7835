"""Tests for ImportService: parse, cross-check and persist."""

from decimal import Decimal

import pytest
from openpyxl import Workbook
from sqlalchemy import select

from inventory_ingestion.domain.types import ImportVariant
from inventory_ingestion.services import ImportService
from inventory_ingestion.templates import write_template
from inventory_kernel.domain.dtos import MaterialType
from inventory_kernel.exceptions import StructuralImportError
from inventory_kernel.models import InventoryReference, Location, Worker


class TestImportReferences:
    def test_persists_references_at_round_one(self, session, deterministic_clock, test_actor_id):
        service = ImportService(session, clock=deterministic_clock)
        report = service.import_reference_rows(
            [
                {"referencia": "REF-001", "control": "C1", "cantidad": "10"},
                {"referencia": "REF-002", "control": "", "cantidad": "2,5"},
            ],
            MaterialType.RAW,
            test_actor_id,
        )
        assert report.persisted == 2
        assert report.imported_at == deterministic_clock.now()

        refs = session.execute(select(InventoryReference).order_by(InventoryReference.referencia)).scalars().all()
        assert [(r.referencia, r.audit_round, r.status) for r in refs] == [
            ("REF-001", 1, "open"),
            ("REF-002", 1, "open"),
        ]
        assert refs[1].control is None
        assert refs[1].expected_quantity == Decimal("2.5")

    def test_existing_reference_skipped_with_warning(self, session, make_reference, test_actor_id):
        make_reference("REF-001")
        report = ImportService(session).import_reference_rows(
            [{"referencia": "REF-001"}, {"referencia": "REF-003"}], MaterialType.RAW, test_actor_id
        )
        assert report.persisted == 1
        assert report.warning_messages == ['Fila 2: La referencia "REF-001" ya existe, se omite']


class TestImportLocations:
    def test_template_round_trip(self, session, make_reference, tmp_path, test_actor_id):
        make_reference("REF-001")
        make_reference("REF-002", control=None)
        path = write_template(ImportVariant.LOCATION, tmp_path)

        report = ImportService(session).import_locations(path, test_actor_id)
        assert report.persisted == 3
        assert report.errors == ()
        assert report.source_name == "plantilla_ubicaciones.xlsx"

        locations = session.execute(select(Location).order_by(Location.source_row_number)).scalars().all()
        assert [loc.source_row_number for loc in locations] == [2, 3, 4]
        assert locations[0].punto_referencia == "Puerta principal"
        assert all(loc.status_c1 == "unset" for loc in locations)

    def test_unknown_reference_rejected_per_row(self, session, make_reference, test_actor_id):
        make_reference("REF-001")
        report = ImportService(session).import_location_rows(
            [{"Referencia": "REF-001"}, {"Referencia": "NOPE"}, {"Referencia": ""}],
            test_actor_id,
        )
        assert report.persisted == 1
        assert [e.row_number for e in report.errors] == [3, 4]
        assert report.error_messages[0] == 'Fila 3: La referencia "NOPE" no existe en la maestra'

    def test_total_failure_persists_nothing(self, session, test_actor_id, captured_logs):
        report = ImportService(session).import_location_rows([{"Ubicación": "E-1"}], test_actor_id)
        assert report.is_total_failure
        assert report.persisted == 0
        assert report.error_messages == ['No se encontró la columna "Referencia"']
        assert session.execute(select(Location)).first() is None
        assert any(r["message"] == "import_rejected" for r in captured_logs())

    def test_strict_mode_raises(self, session, test_actor_id):
        with pytest.raises(StructuralImportError) as exc_info:
            ImportService(session, strict=True).import_location_rows([], test_actor_id)
        assert exc_info.value.messages == ["El archivo no contiene datos"]


class TestImportWorkers:
    def test_workers_persisted_with_warnings(self, session, test_actor_id):
        report = ImportService(session).import_worker_rows(
            [
                {"Nombre": "Juan Pérez", "Turno": 1},
                {"Nombre": "juan perez", "Turno": "5"},
                {"Nombre": "", "Turno": 2},
            ],
            test_actor_id,
        )
        assert report.persisted == 2
        assert len(report.warnings) == 2
        assert report.error_messages == ["Fila 4: El nombre está vacío"]

        workers = session.execute(select(Worker).order_by(Worker.source_row_number)).scalars().all()
        assert [(w.full_name, w.turno, w.is_active) for w in workers] == [
            ("Juan Pérez", 1, True),
            ("juan perez", 1, True),
        ]

    def test_reimporting_same_sheet_adds_no_workers(self, session, test_actor_id):
        rows = [{"Nombre": "Juan Pérez", "Turno": 1}, {"Nombre": "María García", "Turno": 2}]
        service = ImportService(session)
        assert service.import_worker_rows(rows, test_actor_id).persisted == 2

        again = service.import_worker_rows(rows, test_actor_id)
        assert again.persisted == 0
        assert [w.code for w in again.warnings] == ["existing", "existing"]
        assert again.warning_messages[0] == 'Fila 2: El operario "Juan Pérez" ya existe, se omite'
        assert len(session.execute(select(Worker)).scalars().all()) == 2

    def test_existing_match_ignores_case_and_accents(self, session, make_worker, test_actor_id):
        make_worker("María García", turno=2, is_active=False)
        report = ImportService(session).import_worker_rows(
            [{"Nombre": "MARIA GARCIA", "Turno": 1}, {"Nombre": "Ana Ruiz", "Turno": 1}],
            test_actor_id,
        )
        assert report.persisted == 1
        assert report.warnings[0].code == "existing"
        names = session.execute(select(Worker.full_name).order_by(Worker.full_name)).scalars().all()
        assert names == ["Ana Ruiz", "María García"]

    def test_update_existing_takes_sheet_shift(self, session, make_worker, test_actor_id):
        worker = make_worker("Juan Pérez", turno=1)
        report = ImportService(session).import_worker_rows(
            [{"Nombre": "juan pérez", "Turno": 2}], test_actor_id, update_existing=True
        )
        assert report.persisted_ids == (str(worker.id),)
        assert report.warnings[0].code == "updated"
        session.expire_all()
        assert session.get(Worker, worker.id).turno == 2
        assert len(session.execute(select(Worker)).scalars().all()) == 1

    def test_worker_template_file(self, session, tmp_path, test_actor_id):
        path = write_template(ImportVariant.WORKER, tmp_path)
        report = ImportService(session).import_workers(path, test_actor_id)
        assert report.persisted == 3
        assert report.source_name == "plantilla_operarios.xlsx"
        turnos = session.execute(select(Worker.turno).order_by(Worker.source_row_number)).scalars().all()
        assert turnos == [1, 2, 1]


class TestImportReferenceFile:
    def test_reads_first_sheet(self, session, tmp_path, test_actor_id):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(["Referencia", "Control", "Cant.Total"])
        sheet.append(["REF-100", "X", "1.234,5"])
        sheet.append(["REF-101", None, 7])
        path = tmp_path / "maestra_pp.xlsx"
        workbook.save(path)

        report = ImportService(session).import_references(path, MaterialType.IN_PROCESS, test_actor_id)
        assert report.persisted == 2
        ref = session.execute(
            select(InventoryReference).where(InventoryReference.referencia == "REF-100")
        ).scalar_one()
        assert ref.expected_quantity == Decimal("1234.5")
        assert ref.material_type == MaterialType.IN_PROCESS.value
