"""
Module: inventory_kernel.models.reference
Responsibility: ORM persistence for stock references (the "referencia" master
    data).  A reference aggregates all of its locations across rounds and
    carries the cross-round count history.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - referencia is unique.
    - audit_round only moves forward: 1 -> 3 -> 4 -> 5.  Rounds 1 and 2 are
      counted together while audit_round == 1.
    - Once audit_round == 5 the round 1-4 entries of count_history are never
      rewritten (the reconciliation engine only appends).
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.domain.dtos import CountHistoryEntry, ReferenceStatus


class InventoryReference(TrackedBase):
    """A stock-keeping unit tracked across all its locations and rounds."""

    __tablename__ = "inventory_references"
    __table_args__ = (
        Index("idx_reference_round_status", "audit_round", "status"),
    )

    referencia: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    material_type: Mapped[str] = mapped_column(String(2), nullable=False)
    # Partitions raw-material (not null) vs in-process (null) views
    control: Mapped[str | None] = mapped_column(String(50), nullable=True)
    expected_quantity: Mapped[Decimal | None] = mapped_column(nullable=True)

    audit_round: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ReferenceStatus.OPEN.value, nullable=False
    )
    validated_quantity: Mapped[Decimal | None] = mapped_column(nullable=True)
    count_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )

    @property
    def history_entries(self) -> tuple[CountHistoryEntry, ...]:
        return tuple(CountHistoryEntry.from_json(e) for e in (self.count_history or []))

    @property
    def is_audited(self) -> bool:
        return self.status == ReferenceStatus.AUDITED.value

    @property
    def is_critical(self) -> bool:
        return self.status == ReferenceStatus.CRITICAL.value

    def __repr__(self) -> str:
        return f"<InventoryReference {self.referencia} round={self.audit_round} {self.status}>"
