"""Source adapters: read spreadsheet files into header -> cell dicts."""

from inventory_ingestion.adapters.base import SourceAdapter, SourcePreview
from inventory_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = ["SourceAdapter", "SourcePreview", "XlsxSourceAdapter"]
