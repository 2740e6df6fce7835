"""Spreadsheet ingest parsers (pure, synchronous, single pass)."""

from inventory_ingestion.parsers.location import parse_locations
from inventory_ingestion.parsers.reference import parse_quantity, parse_references
from inventory_ingestion.parsers.worker import parse_shift, parse_workers

__all__ = [
    "parse_locations",
    "parse_quantity",
    "parse_references",
    "parse_shift",
    "parse_workers",
]
