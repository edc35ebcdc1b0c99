"""
LifecyclePolicy -- the kernel-side view of configuration.

The kernel never reads configuration files.  ``placement_config`` loads and
validates YAML and bridges it into this frozen value object, which services
receive through their constructors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from placement_kernel.db.types import MONEY_DECIMAL_PLACES
from placement_kernel.domain.safety import DEFAULT_GUARANTEE_DAYS, SafetyThresholds


@dataclass(frozen=True)
class LifecyclePolicy:
    """
    Tunable lifecycle parameters.

    Attributes:
        default_guarantee_days: Window used when a client has no
            ``replacement_guarantee_days`` of its own.
        thresholds: Safety tier boundaries.
        default_fee_percentage: Fee used when a client has no
            ``fee_percentage`` of its own.
        money_places: Decimal places for recognised revenue.
        require_expected_joining_date: Offers must carry an expected
            joining date at creation.
    """

    default_guarantee_days: int = DEFAULT_GUARANTEE_DAYS
    thresholds: SafetyThresholds = field(default_factory=SafetyThresholds)
    default_fee_percentage: Decimal = Decimal("8.33")
    money_places: int = MONEY_DECIMAL_PLACES
    require_expected_joining_date: bool = True


DEFAULT_POLICY = LifecyclePolicy()
