"""
inventory_config -- single public entrypoint for audit configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``AuditConfiguration`` holding
    the import alias tables and the round rules.

Architecture position:
    Configuration -- sits above ``inventory_kernel`` and below
    ``inventory_ingestion`` / ``inventory_engines`` / ``inventory_services``.
    The kernel MUST NEVER import from ``inventory_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic: the same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema violations in the YAML.

Audit relevance:
    Every successful load emits an ``INVENTORY_CONFIG_TRACE`` log entry with
    the config_id, version and checksum.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from inventory_config.loader import load_yaml_file, parse_configuration
from inventory_config.schema import (
    AuditConfiguration,
    FieldAliasDef,
    ImportProfileDef,
    RequiredColumnDef,
    RoundRulesDef,
)
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_CONFIG_NAME = "default.yaml"


def get_active_config(config_dir: Path | None = None) -> AuditConfiguration:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to inventory_config/sets/.

    Raises:
        FileNotFoundError: If the configuration file is missing.
        KeyError, ValueError: If the configuration is malformed.
    """
    return _load(Path(config_dir or _DEFAULT_CONFIG_DIR).resolve())


@lru_cache(maxsize=8)
def _load(sets_dir: Path) -> AuditConfiguration:
    path = sets_dir / _DEFAULT_CONFIG_NAME
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    config = parse_configuration(load_yaml_file(path))

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "profile_count": len(config.profiles),
        },
    )
    return config


__all__ = [
    "AuditConfiguration",
    "FieldAliasDef",
    "ImportProfileDef",
    "RequiredColumnDef",
    "RoundRulesDef",
    "get_active_config",
]
