"""
Reconciliation value types -- frozen inputs and outputs of the aggregator.

Architecture: inventory_engines -- pure, zero I/O.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from inventory_kernel.domain.dtos import CountHistoryEntry

AgreementPolicy = Callable[[Decimal, Decimal], bool]


class ReconciliationAction(str, Enum):
    """What the aggregator decided for a reference."""

    PENDING = "pending"  # Some location still lacks a count for the round(s)
    CLOSED = "closed"  # Agreement reached (or round 5 completed); terminal
    NEXT_ROUND = "next_round"  # Disagreement; schedule round 3 or 4
    ESCALATED = "escalated"  # Round 4 disagrees with all priors; now critical


@dataclass(frozen=True)
class ReferenceSnapshot:
    """Everything the aggregator needs about one reference.

    ``counts`` maps round -> {location_id -> latest quantity}, only for the
    rounds currently open.  Earlier round sums come from ``history``.
    """

    referencia: str
    audit_round: int
    location_ids: tuple[str, ...]
    counts: Mapping[int, Mapping[str, Decimal]] = field(default_factory=dict)
    history: tuple[CountHistoryEntry, ...] = ()

    def history_sum(self, round_number: int) -> Decimal | None:
        for entry in self.history:
            if entry.round == round_number:
                return entry.sum
        return None


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Decision for one reference plus the history entries it appends."""

    referencia: str
    action: ReconciliationAction
    from_round: int
    to_round: int
    appended: tuple[CountHistoryEntry, ...] = ()
    validated_quantity: Decimal | None = None
    agreeing_rounds: tuple[int, int] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.action is ReconciliationAction.CLOSED

    @property
    def changed(self) -> bool:
        return self.action is not ReconciliationAction.PENDING
