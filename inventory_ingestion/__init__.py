"""
inventory_ingestion -- Spreadsheet ingestion for the inventory audit.

Turns uploaded workbooks into normalized location, worker and reference
records: column normalization, per-row validation, template export and
transactional persistence.

Architecture:
    inventory_ingestion/ is a top-level package. Nothing in kernel/ or
    engines/ imports from ingestion.
"""
