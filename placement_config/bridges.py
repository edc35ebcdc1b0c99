"""
Config -> Kernel Bridges.

Functions that convert a ``LifecycleConfig`` into kernel-compatible inputs.
These live in placement_config (the producer) because the kernel must
NEVER import placement_config.

Usage:
    from placement_config import get_active_config
    from placement_config.bridges import build_lifecycle_policy

    config = get_active_config()
    orchestrator = LifecycleOrchestrator(session, policy=build_lifecycle_policy(config))
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from placement_config.schema import LifecycleConfig
from placement_kernel.db.engine import init_engine_from_url
from placement_kernel.domain.policy import LifecyclePolicy
from placement_kernel.domain.safety import SafetyThresholds
from placement_kernel.logging_config import configure_logging


def build_lifecycle_policy(config: LifecycleConfig) -> LifecyclePolicy:
    """Translate the guarantee, revenue and offers sections into a LifecyclePolicy."""
    return LifecyclePolicy(
        default_guarantee_days=config.guarantee.default_days,
        thresholds=SafetyThresholds(
            critical_days=config.guarantee.critical_days,
            at_risk_days=config.guarantee.at_risk_days,
        ),
        default_fee_percentage=config.revenue.default_fee_percentage,
        money_places=config.revenue.money_places,
        require_expected_joining_date=config.offers.require_expected_joining_date,
    )


def build_engine(config: LifecycleConfig) -> Engine:
    """Initialise the kernel's global engine from the database section."""
    return init_engine_from_url(config.database.url, echo=config.database.echo)


def apply_logging(config: LifecycleConfig) -> None:
    """Configure kernel logging at the configured level (idempotent)."""
    configure_logging(level=config.logging.level)
