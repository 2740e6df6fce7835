"""
Module: inventory_kernel.selectors.base
Responsibility: Shared plumbing for read-only selectors: id coercion and
    primary-key lookups that raise the kernel's typed not-found errors.
Architecture position: Kernel > Selectors.  Imports db/ and models only.

Invariants enforced:
    - Selectors never add, delete, flush or commit; the caller owns the
      session and its transaction.
    - Public selector methods return DTOs, not ORM rows.
"""

from collections.abc import Callable
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
RowType = TypeVar("RowType", bound=Base)


def as_uuid(value: str | UUID) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class BaseSelector(Generic[ModelType]):
    """Read-only query object bound to the caller's session."""

    def __init__(self, session: Session):
        self.session = session

    def _require(
        self,
        model: type[RowType],
        row_id: str | UUID,
        not_found: Callable[[str], Exception],
    ) -> RowType:
        """Row by primary key, or raise ``not_found(str(row_id))``."""
        row = self.session.get(model, as_uuid(row_id))
        if row is None:
            raise not_found(str(row_id))
        return row
