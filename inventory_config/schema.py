"""
AuditConfiguration schema.

Defines the human-authored, reviewable configuration for the inventory
audit: the ordered alias tables used by the spreadsheet importers and the
round rules used by the lifecycle engine.  YAML files are parsed into these
types by the loader.

Alias order is significant.  Header matching is exact-or-substring and the
first match wins, so the most specific alias of a field must be declared
before broader ones ("ubicacion detallada" before "ubicacion").
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Import profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldAliasDef:
    """A canonical field and its ordered header aliases."""

    field: str
    aliases: tuple[str, ...]


@dataclass(frozen=True)
class RequiredColumnDef:
    """A column that must be present; headers must normalize exactly to an alias."""

    field: str
    aliases: tuple[str, ...]
    missing_message: str


@dataclass(frozen=True)
class ImportProfileDef:
    """Column layout of one spreadsheet import variant (location, worker, reference)."""

    variant: str
    required: tuple[RequiredColumnDef, ...]
    fields: tuple[FieldAliasDef, ...] = ()

    def required_field(self, name: str) -> RequiredColumnDef:
        for column in self.required:
            if column.field == name:
                return column
        raise KeyError(f"Profile {self.variant!r} has no required column {name!r}")


# ---------------------------------------------------------------------------
# Round rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoundRulesDef:
    """Shift eligibility per ordinary round.

    ``shift_eligibility`` lists (round, allowed shifts).  Rounds absent from
    it accept any active worker regardless of shift.
    """

    shift_eligibility: tuple[tuple[int, tuple[int, ...]], ...]

    def allowed_shifts(self, round_number: int) -> tuple[int, ...] | None:
        for rnd, shifts in self.shift_eligibility:
            if rnd == round_number:
                return shifts
        return None


# ---------------------------------------------------------------------------
# Configuration set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditConfiguration:
    """The active audit configuration.

    Attributes:
        config_id: Unique identifier (e.g., "INVENTORY-AUDIT-v1")
        version: Configuration version number
        checksum: SHA-256 of the canonical serialization of the source YAML
        profiles: Import profiles keyed by variant
        rounds: Round rules
    """

    config_id: str
    version: int
    checksum: str
    rounds: RoundRulesDef
    profiles: dict[str, ImportProfileDef] = field(default_factory=dict)

    def profile(self, variant: str) -> ImportProfileDef:
        try:
            return self.profiles[variant]
        except KeyError:
            raise KeyError(f"No import profile for variant {variant!r}") from None
