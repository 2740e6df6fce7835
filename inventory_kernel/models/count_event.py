"""
Module: inventory_kernel.models.count_event
Responsibility: ORM persistence for count submissions.
Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only: once flushed, a CountEvent is never updated or deleted
      (see db/immutability.py).  A corrected count is a new event; the
      highest attempt per (location, round) is the one that is aggregated.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UUIDString
from inventory_kernel.domain.dtos import CountEventRecord


class CountEvent(Base):
    """One quantity submitted for a location in a round."""

    __tablename__ = "count_events"
    __table_args__ = (
        Index("idx_count_location_round", "location_id", "audit_round"),
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("locations.id"), nullable=False
    )
    audit_round: Mapped[int] = mapped_column(Integer, nullable=False)
    # 1 for the first submission in a round, +1 per re-count
    attempt: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    submitted_by: Mapped[str] = mapped_column(String(64), nullable=False)
    worker_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("workers.id"), nullable=True
    )
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    counted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_record(self) -> CountEventRecord:
        return CountEventRecord(
            event_id=str(self.id),
            location_id=str(self.location_id),
            audit_round=self.audit_round,
            attempt=self.attempt,
            submitted_by=self.submitted_by,
            quantity=self.quantity,
            counted_at=self.counted_at,
            worker_id=str(self.worker_id) if self.worker_id else None,
        )
