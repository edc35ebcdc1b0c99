"""Services for the placement kernel (write side)."""

from placement_kernel.services.lifecycle_orchestrator import (
    Actor,
    CandidateDraft,
    CandidateOutcome,
    LifecycleOrchestrator,
    OfferOutcome,
    RenegeOutcome,
    StageTransitionOutcome,
    SweepOutcome,
)
from placement_kernel.services.offer_ledger import OfferLedger, OfferTerms
from placement_kernel.services.safety_tracker import SafetyTracker
from placement_kernel.services.stage_machine import StageMachine
from placement_kernel.services.timeline_service import TimelineService

__all__ = [
    "Actor",
    "CandidateDraft",
    "CandidateOutcome",
    "LifecycleOrchestrator",
    "OfferLedger",
    "OfferOutcome",
    "OfferTerms",
    "RenegeOutcome",
    "SafetyTracker",
    "StageMachine",
    "StageTransitionOutcome",
    "SweepOutcome",
    "TimelineService",
]
