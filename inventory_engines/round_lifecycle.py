"""
RoundLifecycle -- Pure engine for the per-location, per-round state machine.

Architecture: inventory_engines -- pure calculation, zero I/O.

States per (location, round 1..4):

    unset  --assign worker-->  assigned  --count event-->  counted

The visible state is derived, never stored independently of its causes:
``counted`` iff a count event exists for the round, else ``assigned`` iff
a worker is set, else ``unset``.

Invariants enforced:
    - Assigning the same worker again is a no-op.
    - Reassigning overwrites the worker and never clears ``counted``.
    - Re-counting appends history and leaves the status unchanged.
    - Round 1 accepts shifts 1 and 3, round 2 shifts 2 and 3; rounds 3-4
      accept any active worker.  Inactive workers are never eligible.
    - Round 5 is counted by a supervisor identity without a worker.
"""

from __future__ import annotations

from dataclasses import dataclass

from inventory_config.schema import RoundRulesDef
from inventory_kernel.domain.dtos import ORDINARY_ROUNDS, RoundStatus, WorkerInfo
from inventory_kernel.exceptions import InvalidRoundError


def derive_round_status(worker_id: str | None, has_count: bool) -> RoundStatus:
    """Visible state of one location in one round."""
    if has_count:
        return RoundStatus.COUNTED
    if worker_id:
        return RoundStatus.ASSIGNED
    return RoundStatus.UNSET


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: str = ""


def check_worker_eligibility(
    worker: WorkerInfo, round_number: int, rules: RoundRulesDef
) -> Eligibility:
    """Whether ``worker`` may count ``round_number``."""
    if round_number not in ORDINARY_ROUNDS:
        raise InvalidRoundError(round_number, ORDINARY_ROUNDS)
    if not worker.is_active:
        return Eligibility(False, "worker is inactive")
    allowed = rules.allowed_shifts(round_number)
    if allowed is not None and worker.turno not in allowed:
        return Eligibility(
            False, f"shift {worker.turno} is not allowed (allowed: {list(allowed)})"
        )
    return Eligibility(True)


def eligible_workers(
    workers: list[WorkerInfo], round_number: int, rules: RoundRulesDef
) -> list[WorkerInfo]:
    return [w for w in workers if check_worker_eligibility(w, round_number, rules).eligible]


@dataclass(frozen=True)
class AssignmentTransition:
    """Effect of assigning a worker to one location round."""

    previous_status: RoundStatus
    new_status: RoundStatus
    changed: bool  # worker differs from the current one
    overwrote_counted: bool  # a counted round got a different worker


def plan_assignment(
    current_worker_id: str | None,
    has_count: bool,
    new_worker_id: str,
) -> AssignmentTransition:
    previous = derive_round_status(current_worker_id, has_count)
    changed = current_worker_id != new_worker_id
    return AssignmentTransition(
        previous_status=previous,
        new_status=derive_round_status(new_worker_id, has_count),
        changed=changed,
        overwrote_counted=changed and previous is RoundStatus.COUNTED,
    )


@dataclass(frozen=True)
class CountTransition:
    previous_status: RoundStatus
    new_status: RoundStatus
    is_recount: bool


def plan_count(current_worker_id: str | None, has_count: bool) -> CountTransition:
    """A qualifying count moves the round to counted exactly once."""
    return CountTransition(
        previous_status=derive_round_status(current_worker_id, has_count),
        new_status=RoundStatus.COUNTED,
        is_recount=has_count,
    )


def open_rounds(audit_round: int) -> tuple[int, ...]:
    """Rounds accepting counts while a reference sits at ``audit_round``.

    Rounds 1 and 2 are counted together while audit_round is 1.
    """
    if audit_round == 1:
        return (1, 2)
    return (audit_round,)
