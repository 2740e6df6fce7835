"""
Roles -- closed role variant and the role-derived read scopes.

Responsibility:
    Converts the raw role string returned by the identity directory into the
    closed ``AppRole`` set and derives the two composed read filters used by
    every round view: the control partition and the ownership restriction.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - "operario" always maps to ``AppRole.NONE`` for authorization purposes.
    - Unknown raw role strings raise ``UnknownRoleError``; there is no silent
      default branch.
    - Supervisors (and callers without a role) are always restricted to the
      locations they supervise, regardless of the control partition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import assert_never

from inventory_kernel.exceptions import UnknownRoleError


class AppRole(str, Enum):
    """Authorization role of the active identity."""

    SUPERADMIN = "superadmin"
    ADMIN_MP = "admin_mp"
    ADMIN_PP = "admin_pp"
    SUPERVISOR = "supervisor"
    NONE = "none"


class ControlScope(str, Enum):
    """Partition of references by their nullable control flag."""

    NOT_NULL = "not_null"  # Raw material (control flag present)
    NULL = "null"  # In-process (no control flag)
    ALL = "all"


# Raw values understood by resolve_role; "operario" has no UI access.
_RAW_ROLES: dict[str, AppRole] = {
    "superadmin": AppRole.SUPERADMIN,
    "admin_mp": AppRole.ADMIN_MP,
    "admin_pp": AppRole.ADMIN_PP,
    "supervisor": AppRole.SUPERVISOR,
    "operario": AppRole.NONE,
}


def resolve_role(raw_role: str | None) -> AppRole:
    """Map a raw role string (or None) to the closed role set."""
    if raw_role is None:
        return AppRole.NONE
    key = raw_role.strip().lower()
    if not key:
        return AppRole.NONE
    try:
        return _RAW_ROLES[key]
    except KeyError:
        raise UnknownRoleError(raw_role) from None


def control_scope_for(role: AppRole) -> ControlScope:
    """Fixed role -> control partition mapping."""
    if role is AppRole.ADMIN_MP:
        return ControlScope.NOT_NULL
    if role is AppRole.ADMIN_PP:
        return ControlScope.NULL
    if role is AppRole.SUPERADMIN or role is AppRole.SUPERVISOR or role is AppRole.NONE:
        return ControlScope.ALL
    assert_never(role)


def is_administrative(role: AppRole) -> bool:
    """True when the role sees locations regardless of supervisor."""
    if role is AppRole.SUPERADMIN or role is AppRole.ADMIN_MP or role is AppRole.ADMIN_PP:
        return True
    if role is AppRole.SUPERVISOR or role is AppRole.NONE:
        return False
    assert_never(role)


@dataclass(frozen=True)
class ReadScope:
    """Composed read filter: control partition plus optional owner."""

    control: ControlScope = ControlScope.ALL
    owner_id: str | None = None

    @classmethod
    def for_caller(cls, role: AppRole, caller_id: str | None) -> ReadScope:
        """Build the scope for an authenticated caller."""
        owner = None if is_administrative(role) else (caller_id or "")
        return cls(control=control_scope_for(role), owner_id=owner)

    @property
    def is_owner_restricted(self) -> bool:
        return self.owner_id is not None

    def admits(self, control: str | None, assigned_supervisor_id: str | None) -> bool:
        """True if a location with these attributes is visible in this scope."""
        if self.control is ControlScope.NOT_NULL and control is None:
            return False
        if self.control is ControlScope.NULL and control is not None:
            return False
        if self.owner_id is not None and assigned_supervisor_id != self.owner_id:
            return False
        return True
