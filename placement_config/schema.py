"""
LifecycleConfig schema.

Typed, frozen view of a configuration set.  YAML is parsed into these
dataclasses by the loader; bridges translate them into kernel value
objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GuaranteeConfig:
    """Replacement-guarantee window and safety tiers."""

    default_days: int = 90
    critical_days: int = 7
    at_risk_days: int = 30


@dataclass(frozen=True)
class RevenueConfig:
    default_fee_percentage: Decimal = Decimal("8.33")
    money_places: int = 2


@dataclass(frozen=True)
class OffersConfig:
    require_expected_joining_date: bool = True


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///:memory:"
    echo: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LifecycleConfig:
    """A loaded, validated configuration set."""

    config_id: str
    version: int
    guarantee: GuaranteeConfig = field(default_factory=GuaranteeConfig)
    revenue: RevenueConfig = field(default_factory=RevenueConfig)
    offers: OffersConfig = field(default_factory=OffersConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
    source_path: str | None = None
