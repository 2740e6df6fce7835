"""
inventory_kernel.domain -- Pure types for the audit kernel.

ZERO I/O. Roles, clock and DTOs shared by engines, ingestion and services.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    CRITICAL_ROUND,
    ORDINARY_ROUNDS,
    WORKER_SHIFTS,
    CountEventRecord,
    CountHistoryEntry,
    CriticalReferenceView,
    LocationInfo,
    LocationRoundView,
    MaterialType,
    ReferenceStatus,
    RoundStatus,
    WorkerInfo,
)
from inventory_kernel.domain.roles import (
    AppRole,
    ControlScope,
    ReadScope,
    control_scope_for,
    is_administrative,
    resolve_role,
)

__all__ = [
    "AppRole",
    "CRITICAL_ROUND",
    "Clock",
    "ControlScope",
    "CountEventRecord",
    "CountHistoryEntry",
    "CriticalReferenceView",
    "DeterministicClock",
    "LocationInfo",
    "LocationRoundView",
    "MaterialType",
    "ORDINARY_ROUNDS",
    "WORKER_SHIFTS",
    "ReadScope",
    "ReferenceStatus",
    "RoundStatus",
    "SystemClock",
    "WorkerInfo",
    "control_scope_for",
    "is_administrative",
    "resolve_role",
]
