"""
inventory_services.round_service -- Assignment, counting and reconciliation.

Responsibility:
    The only writer of per-round location state and of reference audit
    progress.  Assigns workers and supervisors, keeps the worker roster,
    records count events, adds locations discovered mid-audit, and runs
    the reconciliation aggregator after every count, applying its
    decision (close, next round, escalate to round 5).

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes RoundLifecycle and ReconciliationAggregator (pure engines)
    with LocationSelector (kernel reads) and the ORM models.

Invariants enforced:
    - A location round is "counted" only in the transaction that appends
      its count event.
    - Counts are accepted only for the rounds open at the reference's
      audit_round (1 and 2 together, then 3, 4, 5) and never after closure.
    - Quantities are non-negative decimals.
    - count_history only grows; earlier entries are never rewritten.
    - Reassigning a worker over a counted round keeps the round counted
      and is logged as a warning.

Failure modes:
    - LocationNotFoundError / ReferenceNotFoundError / WorkerNotFoundError.
    - InvalidRoundError, RoundNotOpenError, ReferenceClosedError.
    - WorkerNotEligibleError: inactive worker, wrong shift, or a worker
      given for round 5.
    - InvalidQuantityError: negative, non-numeric, or not fitting Numeric(18, 3).
    - InvalidWorkerError: empty worker name or a shift outside 1, 2, 3.

Audit relevance:
    Every count is an append-only CountEvent; the reconciliation outcome
    and the validated quantity are logged with the reference in LogContext.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_config import get_active_config
from inventory_config.schema import RoundRulesDef
from inventory_engines.reconciliation import (
    AgreementPolicy,
    ReconciliationAction,
    ReconciliationAggregator,
    ReconciliationOutcome,
    ReferenceSnapshot,
)
from inventory_engines.round_lifecycle import (
    AssignmentTransition,
    check_worker_eligibility,
    eligible_workers,
    open_rounds,
    plan_assignment,
    plan_count,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    CRITICAL_ROUND,
    ORDINARY_ROUNDS,
    QUANTITY_PRECISION,
    QUANTITY_SCALE,
    WORKER_SHIFTS,
    CountEventRecord,
    CriticalReferenceView,
    LocationInfo,
    ReferenceStatus,
    RoundStatus,
    WorkerInfo,
)
from inventory_kernel.domain.roles import ControlScope
from inventory_kernel.exceptions import (
    InvalidQuantityError,
    InvalidRoundError,
    InvalidWorkerError,
    LocationNotFoundError,
    ReferenceClosedError,
    ReferenceNotFoundError,
    RoundNotOpenError,
    WorkerNotEligibleError,
    WorkerNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.count_event import CountEvent
from inventory_kernel.models.location import Location
from inventory_kernel.models.reference import InventoryReference
from inventory_kernel.models.worker import Worker
from inventory_kernel.selectors.base import as_uuid
from inventory_kernel.selectors.location_selector import LocationSelector

logger = get_logger("services.round")

_COUNTABLE_ROUNDS = (*ORDINARY_ROUNDS, CRITICAL_ROUND)


@dataclass(frozen=True)
class CountResult:
    """A recorded count and what it triggered."""

    event: CountEventRecord
    is_recount: bool
    status: RoundStatus | None  # None for round 5 (no per-location status column)
    outcome: ReconciliationOutcome


def _validate_quantity(quantity: Any) -> Decimal:
    if isinstance(quantity, bool):
        raise InvalidQuantityError(quantity)
    try:
        value = quantity if isinstance(quantity, Decimal) else Decimal(str(quantity).strip())
    except (InvalidOperation, ValueError):
        raise InvalidQuantityError(quantity) from None
    if not value.is_finite() or value < 0:
        raise InvalidQuantityError(quantity)
    digits = value.normalize().as_tuple()
    if digits.exponent < -QUANTITY_SCALE:
        raise InvalidQuantityError(quantity, f"more than {QUANTITY_SCALE} decimal places")
    if len(digits.digits) + digits.exponent > QUANTITY_PRECISION - QUANTITY_SCALE:
        raise InvalidQuantityError(quantity, "too large")
    return value


def _validate_shift(turno: Any) -> int:
    if isinstance(turno, bool) or turno not in WORKER_SHIFTS:
        raise InvalidWorkerError("turno", turno)
    return int(turno)


def _validate_name(full_name: Any) -> str:
    name = full_name.strip() if isinstance(full_name, str) else ""
    if not name:
        raise InvalidWorkerError("full_name", full_name)
    return name


class RoundService:
    """
    Per-location round lifecycle and per-reference reconciliation.

    Usage:
        service = RoundService(session, agrees=tolerance_policy(2), clock=clock)
        service.assign_worker(location_id, 1, worker_id)
        result = service.record_count(location_id, 1, Decimal("40"), submitted_by=user_id)
        if result.outcome.action is ReconciliationAction.ESCALATED:
            ...
    """

    def __init__(
        self,
        session: Session,
        agrees: AgreementPolicy,
        clock: Clock | None = None,
        rules: RoundRulesDef | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._rules = rules or get_active_config().rounds
        self._aggregator = ReconciliationAggregator(agrees)
        self._selector = LocationSelector(session)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _location(self, location_id: str | UUID) -> Location:
        location = self._session.get(Location, as_uuid(location_id))
        if location is None:
            raise LocationNotFoundError(str(location_id))
        return location

    def _reference(self, referencia: str) -> InventoryReference:
        reference = self._session.execute(
            select(InventoryReference)
            .where(InventoryReference.referencia == referencia)
            .with_for_update()
        ).scalar_one_or_none()
        if reference is None:
            raise ReferenceNotFoundError(referencia)
        return reference

    def _worker(self, worker_id: str | UUID) -> Worker:
        worker = self._session.get(Worker, as_uuid(worker_id))
        if worker is None:
            raise WorkerNotFoundError(str(worker_id))
        return worker

    @staticmethod
    def _check_open(reference: InventoryReference, round_number: int) -> None:
        if reference.is_audited:
            raise ReferenceClosedError(reference.referencia)
        if round_number not in open_rounds(reference.audit_round):
            raise RoundNotOpenError(reference.referencia, round_number, reference.audit_round)

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def assign_worker(
        self,
        location_id: str | UUID,
        round_number: int,
        worker_id: str | UUID,
        actor_id: str | None = None,
    ) -> AssignmentTransition:
        """Set the worker of one location round (rounds 1-4)."""
        if round_number not in ORDINARY_ROUNDS:
            raise InvalidRoundError(round_number, ORDINARY_ROUNDS)
        location = self._location(location_id)
        reference = self._reference(location.master_reference)
        self._check_open(reference, round_number)

        worker = self._worker(worker_id)
        eligibility = check_worker_eligibility(worker.to_info(), round_number, self._rules)
        if not eligibility.eligible:
            raise WorkerNotEligibleError(str(worker.id), round_number, eligibility.reason)

        current = location.worker_for_round(round_number)
        has_count = location.status_for_round(round_number) is RoundStatus.COUNTED
        transition = plan_assignment(
            str(current) if current else None, has_count, str(worker.id)
        )

        with LogContext.bind(
            actor_id=actor_id, reference=reference.referencia, audit_round=str(round_number)
        ):
            if not transition.changed:
                logger.debug(
                    "worker_assignment_unchanged",
                    extra={"location_id": str(location.id), "worker_id": str(worker.id)},
                )
                return transition

            location.set_worker_for_round(round_number, worker.id)
            location.set_status_for_round(round_number, transition.new_status)
            self._session.flush()

            if transition.overwrote_counted:
                logger.warning(
                    "counted_round_reassigned",
                    extra={
                        "location_id": str(location.id),
                        "previous_worker_id": str(current),
                        "worker_id": str(worker.id),
                    },
                )
            else:
                logger.info(
                    "worker_assigned",
                    extra={"location_id": str(location.id), "worker_id": str(worker.id)},
                )
        return transition

    def assign_supervisor(
        self,
        location_ids: Iterable[str | UUID],
        supervisor_id: str | None,
        actor_id: str | None = None,
    ) -> int:
        """Set (or clear, with None) the supervisor owning each location."""
        updated = 0
        for location_id in location_ids:
            location = self._location(location_id)
            location.assigned_supervisor_id = supervisor_id
            updated += 1
        self._session.flush()
        logger.info(
            "supervisor_assigned",
            extra={"supervisor_id": supervisor_id, "locations": updated, "actor_id": actor_id},
        )
        return updated

    def eligible_workers(self, round_number: int) -> list[WorkerInfo]:
        return eligible_workers(self._selector.active_workers(), round_number, self._rules)

    def create_worker(
        self, full_name: str, turno: int, actor_id: str | None = None
    ) -> WorkerInfo:
        """Add one active worker; unlike the sheet import, shift 3 is accepted."""
        worker = Worker(
            full_name=_validate_name(full_name), turno=_validate_shift(turno), is_active=True
        )
        self._session.add(worker)
        self._session.flush()
        logger.info(
            "worker_created",
            extra={"worker_id": str(worker.id), "turno": worker.turno, "actor_id": actor_id},
        )
        return worker.to_info()

    def update_worker(
        self,
        worker_id: str | UUID,
        *,
        full_name: str | None = None,
        turno: int | None = None,
        actor_id: str | None = None,
    ) -> WorkerInfo:
        """Rename a worker or move them to another shift.

        Existing round assignments are kept; the new shift only applies to
        later assignments.
        """
        worker = self._worker(worker_id)
        changes: dict[str, Any] = {}
        if full_name is not None:
            name = _validate_name(full_name)
            if name != worker.full_name:
                changes["full_name"] = name
        if turno is not None:
            shift = _validate_shift(turno)
            if shift != worker.turno:
                changes["turno"] = shift
        if changes:
            for field, value in changes.items():
                setattr(worker, field, value)
            self._session.flush()
            logger.info(
                "worker_updated",
                extra={
                    "worker_id": str(worker.id),
                    "fields": sorted(changes),
                    "turno": worker.turno,
                    "actor_id": actor_id,
                },
            )
        return worker.to_info()

    def reactivate_worker(self, worker_id: str | UUID, actor_id: str | None = None) -> WorkerInfo:
        worker = self._worker(worker_id)
        if not worker.is_active:
            worker.is_active = True
            self._session.flush()
            logger.info("worker_reactivated", extra={"worker_id": str(worker.id), "actor_id": actor_id})
        return worker.to_info()

    def deactivate_worker(self, worker_id: str | UUID, actor_id: str | None = None) -> WorkerInfo:
        """Workers are never deleted; history keeps pointing at them."""
        worker = self._worker(worker_id)
        if worker.is_active:
            worker.is_active = False
            self._session.flush()
            logger.info("worker_deactivated", extra={"worker_id": str(worker.id), "actor_id": actor_id})
        return worker.to_info()

    # ------------------------------------------------------------------
    # Locations discovered during the audit
    # ------------------------------------------------------------------

    def add_location(
        self,
        referencia: str,
        actor_id: str,
        *,
        location_name: str | None = None,
        location_detail: str | None = None,
        subcategoria: str | None = None,
        observaciones: str | None = None,
        punto_referencia: str | None = None,
        metodo_conteo: str | None = None,
        supervisor_id: str | None = None,
    ) -> LocationInfo:
        """Add a location found while counting an open reference."""
        reference = self._reference(referencia)
        if reference.is_audited:
            raise ReferenceClosedError(referencia)

        location = Location(
            master_reference=referencia,
            location_name=location_name,
            location_detail=location_detail,
            subcategoria=subcategoria,
            observaciones=observaciones,
            punto_referencia=punto_referencia,
            metodo_conteo=metodo_conteo,
            assigned_supervisor_id=supervisor_id,
            discovered_at_round=reference.audit_round,
        )
        self._session.add(location)
        self._session.flush()

        with LogContext.bind(actor_id=actor_id, reference=referencia):
            logger.info(
                "location_discovered",
                extra={
                    "location_id": str(location.id),
                    "discovered_at_round": reference.audit_round,
                },
            )
        return location.to_info()

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------

    def record_count(
        self,
        location_id: str | UUID,
        round_number: int,
        quantity: Any,
        submitted_by: str,
        worker_id: str | UUID | None = None,
    ) -> CountResult:
        """Append a count event and reconcile the reference."""
        if round_number not in _COUNTABLE_ROUNDS:
            raise InvalidRoundError(round_number, _COUNTABLE_ROUNDS)
        location = self._location(location_id)
        reference = self._reference(location.master_reference)
        self._check_open(reference, round_number)
        value = _validate_quantity(quantity)

        status: RoundStatus | None = None
        if round_number == CRITICAL_ROUND:
            if worker_id is not None:
                raise WorkerNotEligibleError(
                    str(worker_id), round_number, "round 5 is counted by the supervisor"
                )
            counting_worker = None
        else:
            assigned = location.worker_for_round(round_number)
            counting_worker = as_uuid(worker_id) if worker_id is not None else assigned
            if worker_id is not None:
                self._worker(worker_id)

        previous_attempts = self._session.execute(
            select(func.count(CountEvent.id)).where(
                CountEvent.location_id == location.id,
                CountEvent.audit_round == round_number,
            )
        ).scalar_one()

        event = CountEvent(
            location_id=location.id,
            audit_round=round_number,
            attempt=previous_attempts + 1,
            submitted_by=submitted_by,
            worker_id=counting_worker,
            quantity=value,
            counted_at=self._clock.now(),
        )
        self._session.add(event)

        if round_number != CRITICAL_ROUND:
            has_count = location.status_for_round(round_number) is RoundStatus.COUNTED
            transition = plan_count(str(counting_worker) if counting_worker else None, has_count)
            location.set_status_for_round(round_number, transition.new_status)
            status = transition.new_status
        self._session.flush()

        with LogContext.bind(
            actor_id=submitted_by,
            reference=reference.referencia,
            audit_round=str(round_number),
        ):
            logger.info(
                "count_recorded",
                extra={
                    "location_id": str(location.id),
                    "attempt": event.attempt,
                    "quantity": str(value),
                },
            )
            outcome = self._reconcile(reference)

        return CountResult(
            event=event.to_record(),
            is_recount=previous_attempts > 0,
            status=status,
            outcome=outcome,
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, referencia: str) -> ReconciliationOutcome:
        """Re-evaluate a reference (e.g. after locations were added)."""
        reference = self._reference(referencia)
        if reference.is_audited:
            raise ReferenceClosedError(referencia)
        with LogContext.bind(reference=referencia, audit_round=str(reference.audit_round)):
            return self._reconcile(reference)

    def _reconcile(self, reference: InventoryReference) -> ReconciliationOutcome:
        rounds = open_rounds(reference.audit_round)
        snapshot = ReferenceSnapshot(
            referencia=reference.referencia,
            audit_round=reference.audit_round,
            location_ids=self._selector.location_ids_for_reference(reference.referencia),
            counts={
                rnd: self._selector.latest_counts(reference.referencia, rnd) for rnd in rounds
            },
            history=reference.history_entries,
        )
        outcome = self._aggregator.evaluate(snapshot=snapshot)
        self._apply(reference, snapshot, outcome)
        return outcome

    def _apply(
        self,
        reference: InventoryReference,
        snapshot: ReferenceSnapshot,
        outcome: ReconciliationOutcome,
    ) -> None:
        if outcome.action is ReconciliationAction.PENDING:
            return

        # Reassign so the JSON column is flagged dirty
        reference.count_history = [
            *reference.count_history,
            *(entry.to_json() for entry in outcome.appended),
        ]

        if outcome.action is ReconciliationAction.CLOSED:
            closing_round = outcome.appended[-1].round
            reference.status = ReferenceStatus.AUDITED.value
            reference.validated_quantity = outcome.validated_quantity
            closing_counts = snapshot.counts[closing_round]
            for location in self._session.execute(
                select(Location).where(Location.master_reference == reference.referencia)
            ).scalars():
                location.validated_at_round = closing_round
                location.validated_quantity = closing_counts.get(str(location.id))
            logger.info(
                "reference_closed",
                extra={
                    "validated_at_round": closing_round,
                    "validated_quantity": str(outcome.validated_quantity),
                },
            )
        elif outcome.action is ReconciliationAction.NEXT_ROUND:
            reference.audit_round = outcome.to_round
            logger.info(
                "round_scheduled",
                extra={"from_round": outcome.from_round, "to_round": outcome.to_round},
            )
        elif outcome.action is ReconciliationAction.ESCALATED:
            reference.audit_round = outcome.to_round
            reference.status = ReferenceStatus.CRITICAL.value
            logger.warning(
                "reference_escalated",
                extra={"history_entries": len(reference.count_history)},
            )
        self._session.flush()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def critical_references(
        self, control: ControlScope = ControlScope.ALL
    ) -> list[CriticalReferenceView]:
        return self._selector.critical_references(control)

    def count_history(self, location_id: str | UUID) -> list[CountEventRecord]:
        return self._selector.count_events(str(location_id))
