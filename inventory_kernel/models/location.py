"""
Module: inventory_kernel.models.location
Responsibility: ORM persistence for physical storage slots holding part of a
    reference's stock, including the per-round worker assignment and the
    visible per-round status.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - status_cN is "counted" only after a count event exists for round N.
      Only RoundService writes the status columns, and it writes "counted"
      in the same transaction that appends the count event.
    - Locations are never hard-deleted.

Audit relevance:
    source_row_number ties every imported location to its spreadsheet row;
    discovered_at_round marks locations added by supervisors mid-audit.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.domain.dtos import ORDINARY_ROUNDS, LocationInfo, RoundStatus


class Location(TrackedBase):
    """A physical slot counted once per round."""

    __tablename__ = "locations"
    __table_args__ = (
        Index("idx_location_reference", "master_reference"),
        Index("idx_location_supervisor", "assigned_supervisor_id"),
    )

    master_reference: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("inventory_references.referencia"),
        nullable=False,
    )
    subcategoria: Mapped[str | None] = mapped_column(String(200), nullable=True)
    observaciones: Mapped[str | None] = mapped_column(String(500), nullable=True)
    location_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location_detail: Mapped[str | None] = mapped_column(String(200), nullable=True)
    punto_referencia: Mapped[str | None] = mapped_column(String(200), nullable=True)
    metodo_conteo: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_row_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    assigned_supervisor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    worker_c1_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("workers.id"), nullable=True
    )
    worker_c2_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("workers.id"), nullable=True
    )
    worker_c3_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("workers.id"), nullable=True
    )
    worker_c4_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("workers.id"), nullable=True
    )

    status_c1: Mapped[str] = mapped_column(String(10), default=RoundStatus.UNSET.value, nullable=False)
    status_c2: Mapped[str] = mapped_column(String(10), default=RoundStatus.UNSET.value, nullable=False)
    status_c3: Mapped[str] = mapped_column(String(10), default=RoundStatus.UNSET.value, nullable=False)
    status_c4: Mapped[str] = mapped_column(String(10), default=RoundStatus.UNSET.value, nullable=False)

    discovered_at_round: Mapped[int | None] = mapped_column(Integer, nullable=True)
    validated_at_round: Mapped[int | None] = mapped_column(Integer, nullable=True)
    validated_quantity: Mapped[Decimal | None] = mapped_column(nullable=True)

    @staticmethod
    def _check_round(round_number: int) -> None:
        if round_number not in ORDINARY_ROUNDS:
            raise ValueError(f"Location rounds are 1-4, got {round_number}")

    def worker_for_round(self, round_number: int) -> UUID | None:
        self._check_round(round_number)
        return getattr(self, f"worker_c{round_number}_id")

    def set_worker_for_round(self, round_number: int, worker_id: UUID | None) -> None:
        self._check_round(round_number)
        setattr(self, f"worker_c{round_number}_id", worker_id)

    def status_for_round(self, round_number: int) -> RoundStatus:
        self._check_round(round_number)
        return RoundStatus(getattr(self, f"status_c{round_number}"))

    def set_status_for_round(self, round_number: int, status: RoundStatus) -> None:
        self._check_round(round_number)
        setattr(self, f"status_c{round_number}", status.value)

    def to_info(self) -> LocationInfo:
        return LocationInfo(
            location_id=str(self.id),
            master_reference=self.master_reference,
            location_name=self.location_name,
            location_detail=self.location_detail,
            subcategoria=self.subcategoria,
            observaciones=self.observaciones,
            punto_referencia=self.punto_referencia,
            metodo_conteo=self.metodo_conteo,
        )

    def __repr__(self) -> str:
        return f"<Location {self.master_reference} {self.location_name or ''}>"
