"""
inventory_ingestion.domain.normalizer -- Header canonicalization and alias matching.

ZERO I/O. Pure functions.

A header is normalized by lowercasing, decomposing (NFD), dropping the
combining marks and trimming, so "  Ubicación Detallada" becomes
"ubicacion detallada".  Normalization is idempotent.

An alias matches a normalized header when they are equal or the alias is
a substring of the header.  Matching is first-match-wins in header order,
then alias order, which is why alias tables list the most specific alias
of a field before the broader ones.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from inventory_ingestion.domain.types import AliasTable, RequiredColumn


def normalize_column_name(name: Any) -> str:
    """Lowercase, strip accents and surrounding whitespace."""
    text = unicodedata.normalize("NFD", str(name).lower())
    return "".join(ch for ch in text if not unicodedata.combining(ch)).strip()


def alias_matches(normalized_header: str, alias: str) -> bool:
    return normalized_header == alias or alias in normalized_header


def match_alias(header: Any, aliases: Sequence[str]) -> str | None:
    """Return the first alias matching ``header``, or None."""
    normalized = normalize_column_name(header)
    for alias in aliases:
        if alias_matches(normalized, alias):
            return alias
    return None


def find_column(headers: Iterable[str], aliases: Sequence[str]) -> str | None:
    """First header (in header order) that matches any alias."""
    for header in headers:
        if match_alias(header, aliases) is not None:
            return header
    return None


def find_exact_column(headers: Iterable[str], aliases: Sequence[str]) -> str | None:
    """First header whose normalized form equals one of ``aliases``."""
    for header in headers:
        if normalize_column_name(header) in aliases:
            return header
    return None


def find_column_value(row: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Cell of the first column of ``row`` matching ``aliases`` (None if absent)."""
    header = find_column(row.keys(), aliases)
    return None if header is None else row[header]


def resolve_columns(headers: Sequence[str], table: AliasTable) -> dict[str, str]:
    """Map canonical field -> original header.

    Required columns are resolved by exact match.  Each optional field then
    takes the first still-unclaimed header matching one of its aliases;
    fields that match nothing are absent from the result.
    """
    resolved: dict[str, str] = {}
    claimed: set[str] = set()

    for column in table.required:
        header = find_exact_column(headers, column.aliases)
        if header is not None:
            resolved[column.field] = header
            claimed.add(header)

    for field_alias in table.fields:
        available = [h for h in headers if h not in claimed]
        header = find_column(available, field_alias.aliases)
        if header is not None:
            resolved[field_alias.field] = header
            claimed.add(header)

    return resolved


def missing_required(headers: Sequence[str], table: AliasTable) -> list[RequiredColumn]:
    """Every required column with no exactly-matching header, in table order."""
    return [
        column
        for column in table.required
        if find_exact_column(headers, column.aliases) is None
    ]
