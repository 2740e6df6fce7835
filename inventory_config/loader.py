"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into typed
``inventory_config.schema`` dataclass instances.  The single public entry
point for runtime config is ``inventory_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    AuditConfiguration,
    FieldAliasDef,
    ImportProfileDef,
    RequiredColumnDef,
    RoundRulesDef,
)
from inventory_kernel.domain.dtos import ORDINARY_ROUNDS, WORKER_SHIFTS


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _parse_aliases(values: Any, owner: str) -> tuple[str, ...]:
    if not values:
        raise ValueError(f"{owner}: alias list must not be empty")
    return tuple(str(v).strip() for v in values)


def parse_import_profile(variant: str, data: dict[str, Any]) -> ImportProfileDef:
    """Parse one import profile (``imports.<variant>`` in the YAML)."""
    required = tuple(
        RequiredColumnDef(
            field=col["field"],
            aliases=_parse_aliases(col["aliases"], f"{variant}.{col['field']}"),
            missing_message=col["missing_message"],
        )
        for col in data["required"]
    )
    fields = tuple(
        FieldAliasDef(
            field=f["field"],
            aliases=_parse_aliases(f["aliases"], f"{variant}.{f['field']}"),
        )
        for f in data.get("fields", [])
    )
    return ImportProfileDef(variant=variant, required=required, fields=fields)


def parse_round_rules(data: dict[str, Any]) -> RoundRulesDef:
    """Parse the ``rounds`` section."""
    eligibility = tuple(
        (int(rnd), tuple(int(s) for s in shifts))
        for rnd, shifts in sorted(data.get("shift_eligibility", {}).items())
    )
    for rnd, shifts in eligibility:
        if rnd not in ORDINARY_ROUNDS:
            raise ValueError(f"shift_eligibility round {rnd} is not one of {list(ORDINARY_ROUNDS)}")
        unknown = set(shifts) - set(WORKER_SHIFTS)
        if unknown:
            raise ValueError(f"shift_eligibility round {rnd} lists unknown shifts {sorted(unknown)}")
    return RoundRulesDef(shift_eligibility=eligibility)


def parse_configuration(data: dict[str, Any]) -> AuditConfiguration:
    """Parse a whole configuration document."""
    profiles = {
        variant: parse_import_profile(variant, profile)
        for variant, profile in data["imports"].items()
    }
    return AuditConfiguration(
        config_id=data["config_id"],
        version=int(data["version"]),
        checksum=compute_checksum(data),
        rounds=parse_round_rules(data.get("rounds", {})),
        profiles=profiles,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
