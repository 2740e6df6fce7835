"""
Scope filtering -- pure per-round tallies under a composed read scope.

Architecture: inventory_engines -- pure calculation, zero I/O.

A location view is counted only if the ``ReadScope`` admits it: the
control partition first, then (for non-administrative callers) ownership
by the assigned supervisor.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from inventory_kernel.domain.dtos import LocationRoundView, RoundStatus
from inventory_kernel.domain.roles import ReadScope

from inventory_engines.round_lifecycle import derive_round_status


@dataclass(frozen=True)
class RoundTally:
    """Locations of one round by visible state."""

    round: int
    pending: int = 0
    assigned: int = 0
    counted: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.assigned + self.counted

    @classmethod
    def zero(cls, round_number: int) -> RoundTally:
        return cls(round=round_number)


def filter_views(
    views: Iterable[LocationRoundView], scope: ReadScope
) -> list[LocationRoundView]:
    return [v for v in views if scope.admits(v.control, v.assigned_supervisor_id)]


def tally_round(
    round_number: int, views: Iterable[LocationRoundView], scope: ReadScope
) -> RoundTally:
    """Count the admitted views of ``round_number`` by derived state."""
    counts = {status: 0 for status in RoundStatus}
    for view in filter_views(views, scope):
        if view.audit_round != round_number:
            continue
        counts[derive_round_status(view.worker_id, view.has_count)] += 1
    return RoundTally(
        round=round_number,
        pending=counts[RoundStatus.UNSET],
        assigned=counts[RoundStatus.ASSIGNED],
        counted=counts[RoundStatus.COUNTED],
    )
