"""
Configuration Loader (``placement_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a frozen
``LifecycleConfig``.  This is build/test tooling; runtime callers go
through ``placement_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown sections and keys are rejected; a typo never silently falls
  back to a default.
* Safety thresholds are positive and ``critical_days < at_risk_days``.
* Fee percentage lies in [0, 100].
* ``compute_checksum`` is deterministic for identical parsed content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values or unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from placement_config.schema import (
    DatabaseConfig,
    GuaranteeConfig,
    LifecycleConfig,
    LoggingConfig,
    OffersConfig,
    RevenueConfig,
)

_SECTIONS: dict[str, type] = {
    "guarantee": GuaranteeConfig,
    "revenue": RevenueConfig,
    "offers": OffersConfig,
    "database": DatabaseConfig,
    "logging": LoggingConfig,
}

_ROOT_KEYS = frozenset({"config_id", "version", *_SECTIONS})

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialisation of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _require_int(section: str, key: str, value: Any, *, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{section}.{key} must be >= {minimum}, got {value}")
    return value


def _require_bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def _require_str(section: str, key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{section}.{key} must be a non-empty string")
    return value


def _section_values(name: str, raw: Any) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{name} must be a mapping, got {type(raw).__name__}")
    allowed = {f.name for f in fields(_SECTIONS[name])}
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ValueError(f"Unknown key(s) in {name}: {', '.join(unknown)}")
    return dict(raw)


def parse_guarantee(raw: Any) -> GuaranteeConfig:
    values = _section_values("guarantee", raw)
    defaults = GuaranteeConfig()
    default_days = _require_int(
        "guarantee", "default_days", values.get("default_days", defaults.default_days), minimum=1
    )
    critical = _require_int(
        "guarantee", "critical_days", values.get("critical_days", defaults.critical_days), minimum=1
    )
    at_risk = _require_int(
        "guarantee", "at_risk_days", values.get("at_risk_days", defaults.at_risk_days), minimum=1
    )
    if critical >= at_risk:
        raise ValueError(
            f"guarantee.critical_days ({critical}) must be less than "
            f"guarantee.at_risk_days ({at_risk})"
        )
    return GuaranteeConfig(default_days=default_days, critical_days=critical, at_risk_days=at_risk)


def parse_revenue(raw: Any) -> RevenueConfig:
    values = _section_values("revenue", raw)
    defaults = RevenueConfig()

    fee_raw = values.get("default_fee_percentage", defaults.default_fee_percentage)
    if isinstance(fee_raw, bool):
        raise ValueError("revenue.default_fee_percentage must be a number")
    try:
        fee = Decimal(str(fee_raw))
    except InvalidOperation:
        raise ValueError(
            f"revenue.default_fee_percentage must be a number, got {fee_raw!r}"
        ) from None
    if not fee.is_finite() or fee < 0 or fee > 100:
        raise ValueError(f"revenue.default_fee_percentage must be in [0, 100], got {fee}")

    places = _require_int(
        "revenue", "money_places", values.get("money_places", defaults.money_places), minimum=0
    )
    return RevenueConfig(default_fee_percentage=fee, money_places=places)


def parse_offers(raw: Any) -> OffersConfig:
    values = _section_values("offers", raw)
    required = values.get(
        "require_expected_joining_date",
        OffersConfig().require_expected_joining_date,
    )
    return OffersConfig(
        require_expected_joining_date=_require_bool(
            "offers", "require_expected_joining_date", required
        )
    )


def parse_database(raw: Any) -> DatabaseConfig:
    values = _section_values("database", raw)
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=_require_str("database", "url", values.get("url", defaults.url)),
        echo=_require_bool("database", "echo", values.get("echo", defaults.echo)),
    )


def parse_logging(raw: Any) -> LoggingConfig:
    values = _section_values("logging", raw)
    level = _require_str("logging", "level", values.get("level", LoggingConfig().level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any], source_path: Path | None = None) -> LifecycleConfig:
    """
    Parse and validate a raw configuration mapping.

    Postconditions:
        - Every section is present (defaults fill omitted sections).
        - ``checksum`` is ``compute_checksum(data)``.

    Raises:
        ValueError: on unknown keys or invalid values.
    """
    unknown = sorted(set(data) - _ROOT_KEYS)
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(unknown)}")

    config_id = _require_str("root", "config_id", data.get("config_id", "default"))
    version = _require_int("root", "version", data.get("version", 1), minimum=1)

    return LifecycleConfig(
        config_id=config_id,
        version=version,
        guarantee=parse_guarantee(data.get("guarantee")),
        revenue=parse_revenue(data.get("revenue")),
        offers=parse_offers(data.get("offers")),
        database=parse_database(data.get("database")),
        logging=parse_logging(data.get("logging")),
        checksum=compute_checksum(data),
        source_path=str(source_path) if source_path is not None else None,
    )


def load_config_file(path: Path) -> LifecycleConfig:
    """Load, parse and validate one configuration file."""
    return parse_config(load_yaml_file(path), source_path=path)
