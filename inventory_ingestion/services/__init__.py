"""Import orchestration (adapter -> parser -> ORM)."""

from inventory_ingestion.services.import_service import ImportReport, ImportService

__all__ = ["ImportReport", "ImportService"]
