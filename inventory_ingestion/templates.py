"""
Import templates: example workbooks handed to operators.

Each template is a fixed example dataset under fixed human-readable
headers.  Templates do not go through alias resolution; they only have to
be accepted by the matching parser.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from inventory_kernel.logging_config import get_logger

from inventory_ingestion.domain.types import ImportVariant

logger = get_logger("ingestion.templates")


@dataclass(frozen=True)
class TemplateSpec:
    """Sheet title, file name, headers with column widths, and example rows."""

    sheet_title: str
    filename: str
    headers: tuple[str, ...]
    widths: tuple[int, ...]
    rows: tuple[tuple[Any, ...], ...]

    def as_dicts(self) -> list[dict[str, Any]]:
        """Example rows keyed by header, as a source adapter would yield them."""
        return [dict(zip(self.headers, row)) for row in self.rows]


LOCATION_TEMPLATE = TemplateSpec(
    sheet_title="Ubicaciones",
    filename="plantilla_ubicaciones.xlsx",
    headers=(
        "Referencia",
        "Subcategoría",
        "Observaciones",
        "Ubicación",
        "Ubicación Detallada",
        "Punto Referencia",
        "Método Conteo",
    ),
    widths=(15, 15, 20, 15, 20, 18, 15),
    rows=(
        ("REF-001", "Tornillos", "Zona A", "ESTANTE-1", "Nivel 3", "Puerta principal", "Manual"),
        ("REF-001", "Tornillos", "Zona B", "ESTANTE-2", "Nivel 1", "Pasillo 2", "Conteo rápido"),
        ("REF-002", "Tuercas", "", "BODEGA-3", "", "", "Báscula"),
    ),
)

WORKER_TEMPLATE = TemplateSpec(
    sheet_title="Operarios",
    filename="plantilla_operarios.xlsx",
    headers=("nombre", "turno"),
    widths=(25, 10),
    rows=(
        ("Juan Pérez", 1),
        ("María García", 2),
        ("Carlos López", 1),
    ),
)

TEMPLATES: dict[ImportVariant, TemplateSpec] = {
    ImportVariant.LOCATION: LOCATION_TEMPLATE,
    ImportVariant.WORKER: WORKER_TEMPLATE,
}


def build_template(variant: ImportVariant) -> Workbook:
    """Workbook holding the example dataset for ``variant``."""
    try:
        spec = TEMPLATES[variant]
    except KeyError:
        raise ValueError(f"No template for import variant {variant.value!r}") from None

    wb = Workbook()
    ws = wb.active
    ws.title = spec.sheet_title

    for col, header in enumerate(spec.headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = Font(bold=True)

    for row_idx, row in enumerate(spec.rows, 2):
        for col, value in enumerate(row, 1):
            # Blank example cells stay empty rather than holding ""
            ws.cell(row=row_idx, column=col, value=value if value != "" else None)

    for col, width in enumerate(spec.widths, 1):
        ws.column_dimensions[get_column_letter(col)].width = width

    return wb


def template_bytes(variant: ImportVariant) -> bytes:
    """The template serialized as .xlsx bytes."""
    output = io.BytesIO()
    build_template(variant).save(output)
    return output.getvalue()


def write_template(variant: ImportVariant, directory: Path) -> Path:
    """Save the template under its standard file name in ``directory``."""
    path = Path(directory) / TEMPLATES[variant].filename
    build_template(variant).save(path)
    logger.info("template_written", extra={"variant": variant.value, "path": str(path)})
    return path
