"""Cross-round reconciliation: round sums, agreement, escalation."""

from inventory_engines.reconciliation.aggregator import (
    ReconciliationAggregator,
    exact_policy,
    round_sum_if_complete,
    tolerance_policy,
)
from inventory_engines.reconciliation.types import (
    AgreementPolicy,
    ReconciliationAction,
    ReconciliationOutcome,
    ReferenceSnapshot,
)

__all__ = [
    "AgreementPolicy",
    "ReconciliationAction",
    "ReconciliationAggregator",
    "ReconciliationOutcome",
    "ReferenceSnapshot",
    "exact_policy",
    "round_sum_if_complete",
    "tolerance_policy",
]
