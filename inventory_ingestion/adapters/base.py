"""
What every spreadsheet reader hands to the parsers.

An adapter turns one uploaded file into ``{header text: cell value}`` rows.
It knows nothing about locations, workers or references; alias resolution
and validation happen in ``inventory_ingestion.parsers``.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Protocol, Union, runtime_checkable

Source = Union[Path, str, BinaryIO]

Row = dict[str, Any]


@runtime_checkable
class SourceAdapter(Protocol):
    def read(self, source: Source, options: dict[str, Any] | None = None) -> Iterator[Row]:
        """Data rows of the first sheet, blank rows skipped."""
        ...

    def preview(self, source: Source, options: dict[str, Any] | None = None) -> SourcePreview:
        ...


@dataclass(frozen=True)
class SourcePreview:
    """Header preview of an upload, shown before the user commits to importing."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[Row, ...] = field(default=())
    sheet_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0


def source_name(source: Source) -> str:
    """File name recorded on the import report."""
    if isinstance(source, (str, Path)):
        return Path(source).name
    name = getattr(source, "name", None)
    return Path(name).name if isinstance(name, str) and name else "<stream>"
