"""
Kardex configuration schema.

Frozen dataclasses that the YAML configuration is parsed into.  The loader
builds them; ``get_active_config()`` hands them to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from kardex_kernel.domain.inventory import DEFAULT_APPROVER_ROLES, Role

DEFAULT_CYCLE_COUNT_REASON = "Cycle count ({before} -> {after})"


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the SQL store."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class ApprovalConfig:
    """Who may decide PENDING movements."""

    approver_roles: frozenset[Role] = DEFAULT_APPROVER_ROLES


@dataclass(frozen=True)
class InventoryConfig:
    near_expiry_days: int = 30
    cycle_count_reason_template: str = DEFAULT_CYCLE_COUNT_REASON


@dataclass(frozen=True)
class KardexConfig:
    """Complete runtime configuration."""

    config_id: str
    version: int
    database: DatabaseConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    approval: ApprovalConfig = field(default_factory=ApprovalConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    checksum: str = ""
