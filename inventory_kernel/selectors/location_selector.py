"""
Location and reference query selector.

Provides read-only access to per-round location views, latest counts,
critical references and workers.

Key design decisions:
- Returns DTOs (frozen dataclasses), not ORM models
- Uses the caller's Session; never creates its own
- Every round view is filtered by a ``ReadScope`` (control partition and,
  for supervisors, ownership) inside the query, not after it

Invariants:
- Rounds 1 and 2 include every reference; rounds 3 and 4 include only
  references whose audit_round has reached that round
- The aggregated count of a location in a round is its highest attempt
"""

from decimal import Decimal

from sqlalchemy import Select, select

from inventory_kernel.domain.dtos import (
    CRITICAL_ROUND,
    ORDINARY_ROUNDS,
    CountEventRecord,
    CriticalReferenceView,
    LocationInfo,
    LocationRoundView,
    ReferenceStatus,
    RoundStatus,
    WorkerInfo,
)
from inventory_kernel.domain.roles import ControlScope, ReadScope
from inventory_kernel.exceptions import (
    InvalidRoundError,
    LocationNotFoundError,
    ReferenceNotFoundError,
    WorkerNotFoundError,
)
from inventory_kernel.models.count_event import CountEvent
from inventory_kernel.models.location import Location
from inventory_kernel.models.reference import InventoryReference
from inventory_kernel.models.worker import Worker
from inventory_kernel.selectors.base import BaseSelector, as_uuid


class LocationSelector(BaseSelector[Location]):
    """Selector for location, reference and worker queries."""

    # ------------------------------------------------------------------
    # Scope filtering
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_scope(stmt: Select, scope: ReadScope) -> Select:
        if scope.control is ControlScope.NOT_NULL:
            stmt = stmt.where(InventoryReference.control.is_not(None))
        elif scope.control is ControlScope.NULL:
            stmt = stmt.where(InventoryReference.control.is_(None))
        if scope.owner_id is not None:
            stmt = stmt.where(Location.assigned_supervisor_id == scope.owner_id)
        return stmt

    # ------------------------------------------------------------------
    # Round views
    # ------------------------------------------------------------------

    def round_views(self, round_number: int, scope: ReadScope) -> list[LocationRoundView]:
        """All locations visible in ``scope`` for an ordinary round."""
        if round_number not in ORDINARY_ROUNDS:
            raise InvalidRoundError(round_number, ORDINARY_ROUNDS)

        stmt = select(Location, InventoryReference.control).join(
            InventoryReference,
            InventoryReference.referencia == Location.master_reference,
        )
        if round_number > 2:
            stmt = stmt.where(InventoryReference.audit_round >= round_number)
        stmt = self._apply_scope(stmt, scope).order_by(
            Location.master_reference, Location.source_row_number
        )

        views = []
        for location, control in self.session.execute(stmt).all():
            worker_id = location.worker_for_round(round_number)
            views.append(
                LocationRoundView(
                    location_id=str(location.id),
                    master_reference=location.master_reference,
                    audit_round=round_number,
                    control=control,
                    assigned_supervisor_id=location.assigned_supervisor_id,
                    worker_id=str(worker_id) if worker_id else None,
                    has_count=location.status_for_round(round_number) is RoundStatus.COUNTED,
                )
            )
        return views

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    def location_ids_for_reference(self, referencia: str) -> tuple[str, ...]:
        rows = self.session.execute(
            select(Location.id)
            .where(Location.master_reference == referencia)
            .order_by(Location.source_row_number, Location.id)
        ).scalars()
        return tuple(str(location_id) for location_id in rows)

    def latest_counts(self, referencia: str, round_number: int) -> dict[str, Decimal]:
        """location_id -> quantity of the highest attempt in ``round_number``."""
        stmt = (
            select(CountEvent.location_id, CountEvent.quantity)
            .join(Location, Location.id == CountEvent.location_id)
            .where(
                Location.master_reference == referencia,
                CountEvent.audit_round == round_number,
            )
            .order_by(CountEvent.attempt)
        )
        latest: dict[str, Decimal] = {}
        for location_id, quantity in self.session.execute(stmt).all():
            latest[str(location_id)] = Decimal(quantity)
        return latest

    def count_events(self, location_id: str, round_number: int | None = None) -> list[CountEventRecord]:
        """Full submission history of a location, oldest first."""
        stmt = select(CountEvent).where(CountEvent.location_id == as_uuid(location_id))
        if round_number is not None:
            stmt = stmt.where(CountEvent.audit_round == round_number)
        stmt = stmt.order_by(CountEvent.audit_round, CountEvent.attempt)
        return [event.to_record() for event in self.session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Critical references
    # ------------------------------------------------------------------

    def critical_references(
        self, control: ControlScope = ControlScope.ALL
    ) -> list[CriticalReferenceView]:
        """References promoted to round 5 and not yet closed."""
        stmt = select(InventoryReference).where(
            InventoryReference.status == ReferenceStatus.CRITICAL.value
        )
        if control is ControlScope.NOT_NULL:
            stmt = stmt.where(InventoryReference.control.is_not(None))
        elif control is ControlScope.NULL:
            stmt = stmt.where(InventoryReference.control.is_(None))
        stmt = stmt.order_by(InventoryReference.referencia)

        views = []
        for reference in self.session.execute(stmt).scalars():
            counted = set(self.latest_counts(reference.referencia, CRITICAL_ROUND))
            locations = self.session.execute(
                select(Location)
                .where(Location.master_reference == reference.referencia)
                .order_by(Location.source_row_number, Location.id)
            ).scalars()
            pending = tuple(
                location.to_info()
                for location in locations
                if str(location.id) not in counted
            )
            views.append(
                CriticalReferenceView(
                    referencia=reference.referencia,
                    material_type=reference.material_type,
                    control=reference.control,
                    expected_quantity=reference.expected_quantity,
                    count_history=reference.history_entries,
                    pending_locations=pending,
                )
            )
        return views

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_location(self, location_id: str) -> LocationInfo:
        return self._require(Location, location_id, LocationNotFoundError).to_info()

    def get_reference_round(self, referencia: str) -> int:
        audit_round = self.session.execute(
            select(InventoryReference.audit_round).where(
                InventoryReference.referencia == referencia
            )
        ).scalar_one_or_none()
        if audit_round is None:
            raise ReferenceNotFoundError(referencia)
        return audit_round

    def get_worker(self, worker_id: str) -> WorkerInfo:
        return self._require(Worker, worker_id, WorkerNotFoundError).to_info()

    def active_workers(self) -> list[WorkerInfo]:
        stmt = select(Worker).where(Worker.is_active.is_(True)).order_by(Worker.full_name)
        return [worker.to_info() for worker in self.session.execute(stmt).scalars()]

    def existing_workers(self) -> list[WorkerInfo]:
        """Every worker, deactivated ones included, for duplicate checks on import."""
        stmt = select(Worker).order_by(Worker.full_name)
        return [worker.to_info() for worker in self.session.execute(stmt).scalars()]

    def existing_references(self, referencias: set[str]) -> set[str]:
        if not referencias:
            return set()
        stmt = select(InventoryReference.referencia).where(
            InventoryReference.referencia.in_(referencias)
        )
        return set(self.session.execute(stmt).scalars())
