"""
kardex_config -- single public entrypoint for kardex configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.

Architecture position:
    Configuration -- sits above ``kardex_kernel`` and below
    ``kardex_services``.  The kernel and the engines MUST NEVER import from
    ``kardex_config``; services receive the parsed values explicitly.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``KeyError`` / ``ValueError`` -- missing keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``KARDEX_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying ledger activity to the configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from kardex_config.loader import load_yaml_file, parse_config
from kardex_config.schema import (
    ApprovalConfig,
    DatabaseConfig,
    InventoryConfig,
    KardexConfig,
    LoggingConfig,
)

_logger = logging.getLogger("kardex_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "kardex.yaml"


def get_active_config(config_path: Path | str | None = None) -> KardexConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to kardex_config/defaults/kardex.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value is invalid.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "KARDEX_CONFIG_TRACE",
        extra={
            "trace_type": "KARDEX_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
        },
    )
    return config


__all__ = [
    "ApprovalConfig",
    "DatabaseConfig",
    "InventoryConfig",
    "KardexConfig",
    "LoggingConfig",
    "get_active_config",
]
