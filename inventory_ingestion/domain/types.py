"""
inventory_ingestion.domain.types -- Pure frozen dataclasses for spreadsheet imports.

ZERO I/O. Imports only from inventory_kernel/domain/ and inventory_config.

Row-level problems are values, not exceptions: parsers collect
``RowValidationError`` / ``RowValidationWarning`` in order and return them
inside the ``ParseResult`` together with the accepted rows.  A missing
required column produces a single ``StructuralError`` and no rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

from inventory_config.schema import ImportProfileDef
from inventory_kernel.domain.dtos import MaterialType

# =============================================================================
# Variants
# =============================================================================


class ImportVariant(str, Enum):
    """Spreadsheet import variants, matching the config profile names."""

    LOCATION = "location"
    WORKER = "worker"
    REFERENCE = "reference"


# =============================================================================
# Alias tables
# =============================================================================


@dataclass(frozen=True)
class FieldAlias:
    """A canonical field with its ordered, normalized aliases."""

    field: str
    aliases: tuple[str, ...]


@dataclass(frozen=True)
class RequiredColumn:
    """A column the sheet must carry; matched exactly after normalization."""

    field: str
    aliases: tuple[str, ...]
    missing_message: str


@dataclass(frozen=True)
class AliasTable:
    """Declarative {canonical field -> ordered aliases} table for one variant.

    Required columns are resolved first and by exact match; optional fields
    then claim headers in table order, so a field declared earlier wins any
    header it matches.
    """

    required: tuple[RequiredColumn, ...] = ()
    fields: tuple[FieldAlias, ...] = ()

    @classmethod
    def from_profile(cls, profile: ImportProfileDef) -> AliasTable:
        from inventory_ingestion.domain.normalizer import normalize_column_name

        return cls(
            required=tuple(
                RequiredColumn(
                    field=c.field,
                    aliases=tuple(normalize_column_name(a) for a in c.aliases),
                    missing_message=c.missing_message,
                )
                for c in profile.required
            ),
            fields=tuple(
                FieldAlias(
                    field=f.field,
                    aliases=tuple(normalize_column_name(a) for a in f.aliases),
                )
                for f in profile.fields
            ),
        )


# =============================================================================
# Issues
# =============================================================================


@dataclass(frozen=True)
class StructuralError:
    """Batch-fatal problem: the sheet is empty or a required column is missing."""

    message: str
    missing_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class RowValidationError:
    """A mandatory field is empty; the row is dropped."""

    row_number: int
    field: str
    message: str


@dataclass(frozen=True)
class RowValidationWarning:
    """The row is kept but a value was coerced or repeated."""

    row_number: int
    code: str  # "duplicate", "coerced", "existing", "updated"
    message: str


# =============================================================================
# Parsed records
# =============================================================================


@dataclass(frozen=True)
class ParsedLocation:
    master_reference: str
    source_row_number: int
    subcategoria: str | None = None
    observaciones: str | None = None
    location_name: str | None = None
    location_detail: str | None = None
    punto_referencia: str | None = None
    metodo_conteo: str | None = None

    def to_record(self) -> dict[str, Any]:
        """The persisted location-import record."""
        return {
            "master_reference": self.master_reference,
            "subcategoria": self.subcategoria,
            "observaciones": self.observaciones,
            "location_name": self.location_name,
            "location_detail": self.location_detail,
            "punto_referencia": self.punto_referencia,
            "metodo_conteo": self.metodo_conteo,
            "source_row_number": self.source_row_number,
        }


@dataclass(frozen=True)
class ParsedWorker:
    full_name: str
    turno: int
    source_row_number: int

    def to_record(self) -> dict[str, Any]:
        """The persisted worker-import record."""
        return {
            "full_name": self.full_name,
            "turno": self.turno,
            "source_row_number": self.source_row_number,
        }


@dataclass(frozen=True)
class ParsedReference:
    referencia: str
    material_type: MaterialType
    source_row_number: int
    control: str | None = None
    expected_quantity: Decimal = Decimal("0")


# =============================================================================
# Result
# =============================================================================

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class ParseResult(Generic[RecordT]):
    """Accepted rows plus every error and warning, in row order."""

    variant: ImportVariant
    accepted: tuple[RecordT, ...] = ()
    errors: tuple[RowValidationError, ...] = ()
    warnings: tuple[RowValidationWarning, ...] = ()
    structural_error: StructuralError | None = None
    input_rows: int = 0

    @property
    def is_structural_failure(self) -> bool:
        return self.structural_error is not None

    @property
    def is_total_failure(self) -> bool:
        """Nothing accepted and at least one error was reported."""
        if self.accepted:
            return False
        return self.structural_error is not None or bool(self.errors)

    @property
    def error_messages(self) -> list[str]:
        messages = [self.structural_error.message] if self.structural_error else []
        messages.extend(e.message for e in self.errors)
        return messages

    @property
    def warning_messages(self) -> list[str]:
        return [w.message for w in self.warnings]


@dataclass
class ResultBuilder(Generic[RecordT]):
    """Mutable accumulator used while a parser walks its rows."""

    variant: ImportVariant
    accepted: list[RecordT] = field(default_factory=list)
    errors: list[RowValidationError] = field(default_factory=list)
    warnings: list[RowValidationWarning] = field(default_factory=list)

    def build(self, input_rows: int) -> ParseResult[RecordT]:
        return ParseResult(
            variant=self.variant,
            accepted=tuple(self.accepted),
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            input_rows=input_rows,
        )
