"""
placement_config -- single public entrypoint for lifecycle configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component may read configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``placement_kernel``.  The kernel MUST
    NEVER import from ``placement_config``; ``bridges`` translates the
    loaded config into kernel value objects (``LifecyclePolicy``).

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Load-time validation: unknown keys and out-of-range values are
      rejected before a config is returned.
    - Deterministic checksum: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- schema or range validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``placement_config_loaded`` log entry with the config id, version and
    checksum, tying lifecycle runs to the configuration that governed them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from placement_config.loader import load_config_file
from placement_config.schema import LifecycleConfig

_logger = logging.getLogger("placement_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "PLACEMENT_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> LifecycleConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then the
    ``PLACEMENT_CONFIG`` environment variable, then the packaged
    ``sets/default.yaml``.  ``DATABASE_URL``, when set, replaces
    ``database.url``.  The checksum covers the file content only.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    config = load_config_file(path)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = replace(config, database=replace(config.database, url=database_url))

    _logger.info(
        "placement_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source_path": config.source_path,
            "database_url_overridden": bool(database_url),
        },
    )
    return config


__all__ = ["LifecycleConfig", "get_active_config"]
