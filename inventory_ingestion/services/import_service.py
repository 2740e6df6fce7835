"""
Import service: read -> parse -> persist.

Orchestrates the source adapter, the pure parsers and the ORM.
Uses structured logging (LogContext, get_logger("ingestion.*")).

Persistence rules:
    - A total failure (structural error, or no accepted rows) persists nothing.
    - A partial failure persists every accepted row and reports both the
      errors and the warnings.
    - All rows of a batch are added in the caller's transaction; the caller
      owns commit/rollback (see ``inventory_kernel.db.session_scope``).
    - A location whose reference is not in the master data is turned into a
      row-level error instead of being persisted.
    - A reference or worker already on file is skipped with an "existing"
      warning; workers may instead have their shift updated.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import MaterialType, ReferenceStatus
from inventory_kernel.exceptions import StructuralImportError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.location import Location
from inventory_kernel.models.reference import InventoryReference
from inventory_kernel.models.worker import Worker
from inventory_kernel.selectors.base import as_uuid
from inventory_kernel.selectors.location_selector import LocationSelector

from inventory_ingestion.adapters.base import Source, SourceAdapter, source_name
from inventory_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter
from inventory_ingestion.domain.normalizer import normalize_column_name
from inventory_ingestion.domain.types import (
    ImportVariant,
    ParsedLocation,
    ParseResult,
    RowValidationError,
    RowValidationWarning,
    StructuralError,
)
from inventory_ingestion.parsers.location import parse_locations
from inventory_ingestion.parsers.reference import parse_references
from inventory_ingestion.parsers.worker import parse_workers

logger = get_logger("ingestion.import_service")


@dataclass(frozen=True)
class ImportReport:
    """Outcome of one import batch, shown to the operator."""

    batch_id: UUID
    variant: ImportVariant
    source_name: str
    imported_at: datetime
    input_rows: int
    persisted_ids: tuple[str, ...] = ()
    errors: tuple[RowValidationError, ...] = ()
    warnings: tuple[RowValidationWarning, ...] = ()
    structural_error: StructuralError | None = None

    @property
    def persisted(self) -> int:
        return len(self.persisted_ids)

    @property
    def is_total_failure(self) -> bool:
        return not self.persisted_ids and (
            self.structural_error is not None or bool(self.errors)
        )

    @property
    def error_messages(self) -> list[str]:
        messages = [self.structural_error.message] if self.structural_error else []
        messages.extend(e.message for e in self.errors)
        return messages

    @property
    def warning_messages(self) -> list[str]:
        return [w.message for w in self.warnings]


class ImportService:
    """Reads spreadsheets, validates them and persists the accepted rows."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        adapter: SourceAdapter | None = None,
        strict: bool = False,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._adapter = adapter or XlsxSourceAdapter()
        # strict: raise StructuralImportError instead of returning a failed report
        self._strict = strict

    # ------------------------------------------------------------------
    # File entry points
    # ------------------------------------------------------------------

    def import_locations(self, source: Source, actor_id: str) -> ImportReport:
        rows = list(self._adapter.read(source))
        return self.import_location_rows(rows, actor_id, source_name(source))

    def import_workers(
        self, source: Source, actor_id: str, update_existing: bool = False
    ) -> ImportReport:
        rows = list(self._adapter.read(source))
        return self.import_worker_rows(
            rows, actor_id, source_name(source), update_existing=update_existing
        )

    def import_references(
        self, source: Source, material_type: MaterialType, actor_id: str
    ) -> ImportReport:
        rows = list(self._adapter.read(source))
        return self.import_reference_rows(rows, material_type, actor_id, source_name(source))

    # ------------------------------------------------------------------
    # Row entry points
    # ------------------------------------------------------------------

    def import_location_rows(
        self, rows: Sequence[dict[str, Any]], actor_id: str, name: str = "<rows>"
    ) -> ImportReport:
        batch_id = uuid4()
        with LogContext.bind(batch_id=str(batch_id), actor_id=actor_id):
            result = parse_locations(rows)
            if result.is_total_failure:
                return self._failed(batch_id, name, result)

            known = LocationSelector(self._session).existing_references(
                {loc.master_reference for loc in result.accepted}
            )
            errors = list(result.errors)
            to_persist: list[ParsedLocation] = []
            for parsed in result.accepted:
                if parsed.master_reference in known:
                    to_persist.append(parsed)
                else:
                    errors.append(
                        RowValidationError(
                            row_number=parsed.source_row_number,
                            field="master_reference",
                            message=(
                                f"Fila {parsed.source_row_number}: La referencia "
                                f'"{parsed.master_reference}" no existe en la maestra'
                            ),
                        )
                    )
            errors.sort(key=lambda e: e.row_number)

            locations = [Location(**parsed.to_record()) for parsed in to_persist]
            return self._persist(batch_id, name, result, locations, errors)

    def import_worker_rows(
        self,
        rows: Sequence[dict[str, Any]],
        actor_id: str,
        name: str = "<rows>",
        update_existing: bool = False,
    ) -> ImportReport:
        """Persist new workers; a name already on the roster is skipped.

        Names match case- and accent-insensitively, deactivated workers
        included.  With ``update_existing`` the roster worker takes the
        sheet's shift instead of being skipped.
        """
        batch_id = uuid4()
        with LogContext.bind(batch_id=str(batch_id), actor_id=actor_id):
            result = parse_workers(rows)
            if result.is_total_failure:
                return self._failed(batch_id, name, result)

            roster = {
                normalize_column_name(info.full_name): info
                for info in LocationSelector(self._session).existing_workers()
            }
            warnings = list(result.warnings)
            workers: list[Worker] = []
            for parsed in result.accepted:
                existing = roster.get(normalize_column_name(parsed.full_name))
                if existing is None:
                    workers.append(Worker(**parsed.to_record(), is_active=True))
                    continue
                row = parsed.source_row_number
                if not update_existing:
                    warnings.append(
                        RowValidationWarning(
                            row_number=row,
                            code="existing",
                            message=(
                                f'Fila {row}: El operario "{existing.full_name}" '
                                "ya existe, se omite"
                            ),
                        )
                    )
                    continue
                worker = self._session.get(Worker, as_uuid(existing.worker_id))
                if worker.turno != parsed.turno:
                    logger.info(
                        "worker_shift_updated_by_import",
                        extra={
                            "worker_id": existing.worker_id,
                            "old_turno": worker.turno,
                            "new_turno": parsed.turno,
                        },
                    )
                    worker.turno = parsed.turno
                warnings.append(
                    RowValidationWarning(
                        row_number=row,
                        code="updated",
                        message=(
                            f'Fila {row}: El operario "{existing.full_name}" ya existe, '
                            f"turno actualizado a {parsed.turno}"
                        ),
                    )
                )
                if worker not in workers:
                    workers.append(worker)
            warnings.sort(key=lambda w: w.row_number)
            return self._persist(
                batch_id, name, result, workers, list(result.errors), warnings
            )

    def import_reference_rows(
        self,
        rows: Sequence[dict[str, Any]],
        material_type: MaterialType,
        actor_id: str,
        name: str = "<rows>",
    ) -> ImportReport:
        batch_id = uuid4()
        with LogContext.bind(batch_id=str(batch_id), actor_id=actor_id):
            result = parse_references(rows, material_type)
            if result.is_total_failure:
                return self._failed(batch_id, name, result)

            existing = LocationSelector(self._session).existing_references(
                {ref.referencia for ref in result.accepted}
            )
            warnings = list(result.warnings)
            references = []
            pending: set[str] = set()
            for parsed in result.accepted:
                if parsed.referencia in existing or parsed.referencia in pending:
                    warnings.append(
                        RowValidationWarning(
                            row_number=parsed.source_row_number,
                            code="existing",
                            message=(
                                f'Fila {parsed.source_row_number}: La referencia '
                                f'"{parsed.referencia}" ya existe, se omite'
                            ),
                        )
                    )
                    continue
                pending.add(parsed.referencia)
                references.append(
                    InventoryReference(
                        referencia=parsed.referencia,
                        material_type=parsed.material_type.value,
                        control=parsed.control,
                        expected_quantity=parsed.expected_quantity,
                        audit_round=1,
                        status=ReferenceStatus.OPEN.value,
                        count_history=[],
                    )
                )
            warnings.sort(key=lambda w: w.row_number)
            return self._persist(
                batch_id, name, result, references, list(result.errors), warnings
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _failed(self, batch_id: UUID, name: str, result: ParseResult) -> ImportReport:
        logger.warning(
            "import_rejected",
            extra={
                "variant": result.variant.value,
                "source_name": name,
                "input_rows": result.input_rows,
                "errors": len(result.errors),
                "structural": result.structural_error is not None,
            },
        )
        if self._strict:
            raise StructuralImportError(result.variant.value, result.error_messages)
        return ImportReport(
            batch_id=batch_id,
            variant=result.variant,
            source_name=name,
            imported_at=self._clock.now(),
            input_rows=result.input_rows,
            errors=result.errors,
            warnings=result.warnings,
            structural_error=result.structural_error,
        )

    def _persist(
        self,
        batch_id: UUID,
        name: str,
        result: ParseResult,
        entities: list[Any],
        errors: list[RowValidationError],
        warnings: list[RowValidationWarning] | None = None,
    ) -> ImportReport:
        warnings = list(result.warnings) if warnings is None else warnings
        if not entities:
            report = ImportReport(
                batch_id=batch_id,
                variant=result.variant,
                source_name=name,
                imported_at=self._clock.now(),
                input_rows=result.input_rows,
                errors=tuple(errors),
                warnings=tuple(warnings),
            )
            logger.warning(
                "import_persisted_nothing",
                extra={"variant": result.variant.value, "errors": len(errors)},
            )
            return report

        self._session.add_all(entities)
        self._session.flush()

        logger.info(
            "import_persisted",
            extra={
                "variant": result.variant.value,
                "source_name": name,
                "input_rows": result.input_rows,
                "persisted": len(entities),
                "errors": len(errors),
                "warnings": len(warnings),
            },
        )
        return ImportReport(
            batch_id=batch_id,
            variant=result.variant,
            source_name=name,
            imported_at=self._clock.now(),
            input_rows=result.input_rows,
            persisted_ids=tuple(str(e.id) for e in entities),
            errors=tuple(errors),
            warnings=tuple(warnings),
        )
