"""
Configuration Loader (``kardex_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``kardex_config.schema`` dataclasses.  Runtime callers go through
``kardex_config.get_active_config()``, never through this module.

Invariants enforced
-------------------
* Required keys are never defaulted silently: a missing key raises
  ``KeyError``, a bad value raises ``ValueError``.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError``.
* Unknown role, non-positive pool size, template without placeholders
  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from kardex_config.schema import (
    DEFAULT_CYCLE_COUNT_REASON,
    ApprovalConfig,
    DatabaseConfig,
    InventoryConfig,
    KardexConfig,
    LoggingConfig,
)
from kardex_kernel.domain.inventory import DEFAULT_APPROVER_ROLES, Role

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top-level document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    pool_size = int(data.get("pool_size", 10))
    max_overflow = int(data.get("max_overflow", 5))
    if pool_size <= 0:
        raise ValueError(f"database.pool_size must be positive, got {pool_size}")
    if max_overflow < 0:
        raise ValueError(f"database.max_overflow cannot be negative, got {max_overflow}")
    return DatabaseConfig(
        url=str(data["url"]),
        echo=bool(data.get("echo", False)),
        pool_size=pool_size,
        max_overflow=max_overflow,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown logging.level: {level}")
    return LoggingConfig(level=level)


def parse_approval(data: dict[str, Any]) -> ApprovalConfig:
    raw_roles = data.get("approver_roles")
    if raw_roles is None:
        return ApprovalConfig(approver_roles=DEFAULT_APPROVER_ROLES)
    roles: set[Role] = set()
    for raw in raw_roles:
        try:
            roles.add(Role(str(raw).strip().upper()))
        except ValueError:
            raise ValueError(f"Unknown approver role: {raw}") from None
    if not roles:
        raise ValueError("approval.approver_roles cannot be empty")
    return ApprovalConfig(approver_roles=frozenset(roles))


def parse_inventory(data: dict[str, Any]) -> InventoryConfig:
    near_expiry_days = int(data.get("near_expiry_days", 30))
    if near_expiry_days < 0:
        raise ValueError(f"inventory.near_expiry_days cannot be negative, got {near_expiry_days}")
    template = str(data.get("cycle_count_reason_template", DEFAULT_CYCLE_COUNT_REASON))
    if "{before}" not in template or "{after}" not in template:
        raise ValueError(
            "inventory.cycle_count_reason_template must contain {before} and {after}"
        )
    return InventoryConfig(
        near_expiry_days=near_expiry_days,
        cycle_count_reason_template=template,
    )


def parse_config(data: dict[str, Any]) -> KardexConfig:
    """Parse a full configuration document."""
    return KardexConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        database=parse_database(data["database"]),
        logging=parse_logging(data.get("logging") or {}),
        approval=parse_approval(data.get("approval") or {}),
        inventory=parse_inventory(data.get("inventory") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
