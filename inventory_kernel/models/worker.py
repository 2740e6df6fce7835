"""
Module: inventory_kernel.models.worker
Responsibility: ORM persistence for field workers (operarios).
Architecture position: Kernel > Models.

Invariants enforced:
    - turno is 1, 2 or 3 (3 = cross-shift availability).
    - Workers are deactivated, never deleted, while history references them.
"""

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.domain.dtos import WorkerInfo

CROSS_SHIFT = 3


class Worker(TrackedBase):
    """A field worker who physically counts locations."""

    __tablename__ = "workers"
    __table_args__ = (
        CheckConstraint("turno IN (1, 2, 3)", name="turno"),
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    turno: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    source_row_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def to_info(self) -> WorkerInfo:
        return WorkerInfo(
            worker_id=str(self.id),
            full_name=self.full_name,
            turno=self.turno,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<Worker {self.full_name} turno={self.turno}>"
