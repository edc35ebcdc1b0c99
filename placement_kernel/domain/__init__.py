"""
Pure domain core: clock, workflows, stage tables, revenue and safety math.

Nothing in this package performs I/O or imports SQLAlchemy sessions.
"""

from placement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from placement_kernel.domain.revenue import (
    CompensationBreakdown,
    RevenueRecognition,
    calculate_revenue,
    compensation_breakdown,
)
from placement_kernel.domain.safety import (
    SafetyClassification,
    SafetyStatus,
    SafetyThresholds,
    classify,
)
from placement_kernel.domain.stages import (
    ACTIVE_OFFER_STATUSES,
    CandidateStage,
    OfferStatus,
)

__all__ = [
    "ACTIVE_OFFER_STATUSES",
    "CandidateStage",
    "Clock",
    "CompensationBreakdown",
    "DeterministicClock",
    "OfferStatus",
    "RevenueRecognition",
    "SafetyClassification",
    "SafetyStatus",
    "SafetyThresholds",
    "SystemClock",
    "calculate_revenue",
    "classify",
    "compensation_breakdown",
]
