"""
Module: inventory_kernel.db.base
Responsibility: Declarative base for the audit tables.  Fixes the column
    conventions every model shares: UUID keys stored as text, three-decimal
    quantities, timezone-aware timestamps and named constraints.
Architecture position: Kernel > DB.  Imported by every model; imports
    only the quantity scale from domain/dtos.py; nothing from models/,
    selectors/ or outer layers.

Invariants enforced:
    - Every row has a uuid4 primary key, stored as String(36) so the same
      schema runs on PostgreSQL and SQLite.
    - Counted and validated quantities are Numeric(18, 3), never float.
    - Constraint and index names are deterministic (naming convention), so
      the schema diffs cleanly between databases.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, MetaData, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from inventory_kernel.domain.dtos import QUANTITY_PRECISION, QUANTITY_SCALE

QUANTITY_TYPE = Numeric(QUANTITY_PRECISION, QUANTITY_SCALE)

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """UUID column stored as its 36-character text form.

    Accepts UUID objects or their string form on the way in (service
    callers pass ids as strings); always returns ``uuid.UUID``.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value if isinstance(value, PyUUID) else PyUUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return PyUUID(value)


class Base(DeclarativeBase):
    """Root of all audit models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: QUANTITY_TYPE,
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Mutable master data (references, locations, workers).

    Count events do not use this base: they are never updated.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )
