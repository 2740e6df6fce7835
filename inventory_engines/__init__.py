"""
Module: inventory_engines
Responsibility:
    Package entrypoint re-exporting the pure audit engines: the round
    lifecycle, the reconciliation aggregator and scope tallies.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import inventory_kernel.domain and inventory_config.schema.
    MUST NOT import inventory_services.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only arithmetic for quantities.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from inventory_engines.reconciliation import ReconciliationAggregator, tolerance_policy
    from inventory_engines.round_lifecycle import derive_round_status
    from inventory_engines.scope import tally_round
"""

from inventory_engines.reconciliation import (
    AgreementPolicy,
    ReconciliationAction,
    ReconciliationAggregator,
    ReconciliationOutcome,
    ReferenceSnapshot,
    exact_policy,
    round_sum_if_complete,
    tolerance_policy,
)
from inventory_engines.round_lifecycle import (
    AssignmentTransition,
    CountTransition,
    Eligibility,
    check_worker_eligibility,
    derive_round_status,
    eligible_workers,
    open_rounds,
    plan_assignment,
    plan_count,
)
from inventory_engines.scope import RoundTally, filter_views, tally_round

__all__ = [
    "AgreementPolicy",
    "AssignmentTransition",
    "CountTransition",
    "Eligibility",
    "ReconciliationAction",
    "ReconciliationAggregator",
    "ReconciliationOutcome",
    "ReferenceSnapshot",
    "RoundTally",
    "check_worker_eligibility",
    "derive_round_status",
    "eligible_workers",
    "exact_policy",
    "filter_views",
    "open_rounds",
    "plan_assignment",
    "plan_count",
    "round_sum_if_complete",
    "tally_round",
    "tolerance_policy",
]
