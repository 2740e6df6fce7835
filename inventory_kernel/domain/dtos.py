"""
DTOs -- Pure domain data transfer objects for the audit.

Responsibility:
    Immutable shapes that flow between selectors, engines and services:
    worker and location snapshots, count events, per-round location views,
    count-history entries and the critical-reference read view.

Architecture position:
    Kernel > Domain -- pure, zero I/O. Selectors convert ORM rows into these
    types; engines never see ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

ORDINARY_ROUNDS: tuple[int, ...] = (1, 2, 3, 4)
CRITICAL_ROUND = 5
# 3 = cross-shift: eligible for both round 1 and round 2
WORKER_SHIFTS: tuple[int, ...] = (1, 2, 3)

# Counted quantities are stored as Numeric(QUANTITY_PRECISION, QUANTITY_SCALE)
QUANTITY_PRECISION = 18
QUANTITY_SCALE = 3


class RoundStatus(str, Enum):
    """Visible per-round state of a location."""

    UNSET = "unset"
    ASSIGNED = "assigned"
    COUNTED = "counted"


class ReferenceStatus(str, Enum):
    """Lifecycle of a reference across the audit."""

    OPEN = "open"  # Counting in rounds 1-4
    CRITICAL = "critical"  # Promoted to round 5, awaiting manual closure
    AUDITED = "audited"  # Terminally closed


class MaterialType(str, Enum):
    RAW = "MP"
    IN_PROCESS = "PP"


@dataclass(frozen=True)
class WorkerInfo:
    worker_id: str
    full_name: str
    turno: int
    is_active: bool = True


@dataclass(frozen=True)
class LocationInfo:
    """Descriptive fields of a location (as shown on a counting sheet)."""

    location_id: str
    master_reference: str
    location_name: str | None = None
    location_detail: str | None = None
    subcategoria: str | None = None
    observaciones: str | None = None
    punto_referencia: str | None = None
    metodo_conteo: str | None = None


@dataclass(frozen=True)
class CountEventRecord:
    """One append-only count submission."""

    event_id: str
    location_id: str
    audit_round: int
    attempt: int
    submitted_by: str
    quantity: Decimal
    counted_at: datetime
    worker_id: str | None = None


@dataclass(frozen=True)
class LocationRoundView:
    """A location as seen from one round: who is assigned, whether counted."""

    location_id: str
    master_reference: str
    audit_round: int
    control: str | None = None
    assigned_supervisor_id: str | None = None
    worker_id: str | None = None
    has_count: bool = False


@dataclass(frozen=True)
class CountHistoryEntry:
    """Aggregate sum of one completed round for a reference."""

    round: int
    sum: Decimal

    def to_json(self) -> dict[str, Any]:
        return {"round": self.round, "sum": str(self.sum)}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CountHistoryEntry:
        return cls(round=int(data["round"]), sum=Decimal(str(data["sum"])))


@dataclass(frozen=True)
class CriticalReferenceView:
    """Round-5 read view for one critical reference."""

    referencia: str
    material_type: str
    control: str | None
    expected_quantity: Decimal | None
    count_history: tuple[CountHistoryEntry, ...] = ()
    pending_locations: tuple[LocationInfo, ...] = ()

    @property
    def is_ready_to_close(self) -> bool:
        return not self.pending_locations
