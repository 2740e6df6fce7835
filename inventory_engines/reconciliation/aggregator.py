"""
ReconciliationAggregator -- Pure engine for cross-round discrepancy resolution.

Architecture: inventory_engines -- pure calculation, zero I/O, zero DB access.
All inputs are frozen dataclasses populated by the service layer.

A round has a sum only once every location of the reference has a count
for it (the latest submission per location).  Whether two sums agree is an
injected business rule ``agrees(sum_i, sum_j)``; the engine has no default.

    audit_round 1:  rounds 1 and 2 agree         -> CLOSED with the round-2 sum
                    otherwise                    -> NEXT_ROUND (3)
    audit_round 3:  round 3 agrees with 1 or 2   -> CLOSED with the round-3 sum
                    otherwise                    -> NEXT_ROUND (4)
    audit_round 4:  round 4 agrees with 1, 2, 3  -> CLOSED with the round-4 sum
                    otherwise                    -> ESCALATED (5, critical)
    audit_round 5:  every location counted       -> CLOSED with the round-5 sum

Every decision appends the newly completed rounds to the history, one
entry per round, so an escalated reference carries exactly four entries.
Entries for earlier rounds are never rewritten.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from inventory_kernel.domain.dtos import CRITICAL_ROUND, CountHistoryEntry
from inventory_kernel.exceptions import InvalidRoundError
from inventory_kernel.logging_config import get_logger
from inventory_engines.tracer import traced_engine

from inventory_engines.reconciliation.types import (
    AgreementPolicy,
    ReconciliationAction,
    ReconciliationOutcome,
    ReferenceSnapshot,
)

logger = get_logger("engines.reconciliation.aggregator")

# audit_round -> (rounds completed at this stage, prior rounds to compare against)
_STAGES: dict[int, tuple[tuple[int, ...], tuple[int, ...]]] = {
    1: ((1, 2), ()),
    3: ((3,), (1, 2)),
    4: ((4,), (1, 2, 3)),
    CRITICAL_ROUND: ((CRITICAL_ROUND,), ()),
}

_NEXT_ROUND = {1: 3, 3: 4, 4: CRITICAL_ROUND}


def tolerance_policy(tolerance: Decimal | int | str) -> AgreementPolicy:
    """Agreement when two sums differ by strictly less than ``tolerance``."""
    limit = Decimal(str(tolerance))

    def agrees(a: Decimal, b: Decimal) -> bool:
        return abs(a - b) < limit

    return agrees


def exact_policy(a: Decimal, b: Decimal) -> bool:
    """Agreement only on identical sums."""
    return a == b


def round_sum_if_complete(
    location_ids: tuple[str, ...], counts: Mapping[str, Decimal]
) -> Decimal | None:
    """Sum of the round, or None while any location is still uncounted."""
    if not location_ids:
        return None
    total = Decimal("0")
    for location_id in location_ids:
        quantity = counts.get(location_id)
        if quantity is None:
            return None
        total += quantity
    return total


class ReconciliationAggregator:
    """Decides closure, the next round or escalation for one reference.

    Usage:
        aggregator = ReconciliationAggregator(agrees=tolerance_policy(2))
        outcome = aggregator.evaluate(snapshot=snapshot)
    """

    def __init__(self, agrees: AgreementPolicy):
        if agrees is None:
            raise ValueError("An agreement policy is required")
        self._agrees = agrees

    @traced_engine(
        "reconciliation",
        "1.0",
        fingerprint_fields=("snapshot",),
        result_fields=("action", "from_round", "to_round"),
    )
    def evaluate(self, *, snapshot: ReferenceSnapshot) -> ReconciliationOutcome:
        audit_round = snapshot.audit_round
        if audit_round not in _STAGES:
            raise InvalidRoundError(audit_round, tuple(_STAGES))
        completing, priors = _STAGES[audit_round]

        sums: dict[int, Decimal] = {}
        for rnd in completing:
            total = round_sum_if_complete(snapshot.location_ids, snapshot.counts.get(rnd, {}))
            if total is None:
                return ReconciliationOutcome(
                    referencia=snapshot.referencia,
                    action=ReconciliationAction.PENDING,
                    from_round=audit_round,
                    to_round=audit_round,
                )
            sums[rnd] = total

        appended = tuple(CountHistoryEntry(round=rnd, sum=sums[rnd]) for rnd in completing)
        current = completing[-1]

        if audit_round == CRITICAL_ROUND:
            return self._closed(snapshot, appended, sums[current], None)

        if audit_round == 1:
            candidates = ((1, 2),)
        else:
            candidates = tuple((prior, current) for prior in priors)

        for first, second in candidates:
            a = sums[first] if first in sums else snapshot.history_sum(first)
            b = sums[second]
            if a is None:
                raise ValueError(
                    f"{snapshot.referencia}: history has no sum for round {first}"
                )
            if self._agrees(a, b):
                return self._closed(snapshot, appended, sums[current], (first, second))

        next_round = _NEXT_ROUND[audit_round]
        action = (
            ReconciliationAction.ESCALATED
            if next_round == CRITICAL_ROUND
            else ReconciliationAction.NEXT_ROUND
        )
        logger.info(
            "reconciliation_disagreement",
            extra={
                "referencia": snapshot.referencia,
                "from_round": audit_round,
                "to_round": next_round,
                "round_sums": {str(r): str(s) for r, s in sums.items()},
            },
        )
        return ReconciliationOutcome(
            referencia=snapshot.referencia,
            action=action,
            from_round=audit_round,
            to_round=next_round,
            appended=appended,
        )

    def _closed(
        self,
        snapshot: ReferenceSnapshot,
        appended: tuple[CountHistoryEntry, ...],
        validated: Decimal,
        agreeing: tuple[int, int] | None,
    ) -> ReconciliationOutcome:
        logger.info(
            "reconciliation_closed",
            extra={
                "referencia": snapshot.referencia,
                "audit_round": snapshot.audit_round,
                "validated_quantity": str(validated),
                "agreeing_rounds": list(agreeing) if agreeing else None,
            },
        )
        return ReconciliationOutcome(
            referencia=snapshot.referencia,
            action=ReconciliationAction.CLOSED,
            from_round=snapshot.audit_round,
            to_round=snapshot.audit_round,
            appended=appended,
            validated_quantity=validated,
            agreeing_rounds=agreeing,
        )
