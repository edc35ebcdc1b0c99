"""
Lifecycle Invariants Contract.

These invariants are structural law for every candidate.  No configuration
may override them.  Enforcement is distributed across the StageMachine,
OfferLedger, SafetyTracker, the partial unique indexes and the ORM
immutability listeners; ``check_candidate_invariants`` re-derives them from
stored state so tests and operators can detect an inconsistent record.
"""

from enum import Enum, unique
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from placement_kernel.domain.stages import (
    ACTIVE_OFFER_STATUSES,
    CandidateStage,
    OfferStatus,
    stage_matches_offer,
)
from placement_kernel.domain.safety import SafetyStatus
from placement_kernel.exceptions import CandidateNotFoundError
from placement_kernel.models.candidate import Candidate
from placement_kernel.models.offer import Offer
from placement_kernel.models.placement_safety import PlacementSafetyRecord


@unique
class LifecycleInvariant(str, Enum):
    """Non-configurable invariants of the placement lifecycle."""

    STAGE_OFFER_CONSISTENCY = "stage_offer_consistency"
    """The candidate stage and the active offer status agree."""

    SINGLE_ACTIVE_OFFER = "single_active_offer"
    """At most one offer per candidate in extended/accepted/joined."""

    JOINED_HAS_REVENUE = "joined_has_revenue"
    """A joined candidate has revenue_earned and guarantee_period_ends."""

    REVENUE_ONLY_WHEN_JOINED = "revenue_only_when_joined"
    """Non-zero revenue_earned only while the candidate is joined."""

    GUARANTEE_IFF_JOINED_ONCE = "guarantee_iff_joined_once"
    """guarantee_period_ends is set iff the candidate has ever joined."""

    JOINED_HAS_SAFETY_RECORD = "joined_has_safety_record"
    """A joined candidate has exactly one open safety record."""

    BILLABLE_IS_FIXED = "billable_is_fixed"
    """billable_ctc equals fixed_ctc whenever both are set."""


ALL_LIFECYCLE_INVARIANTS: frozenset[LifecycleInvariant] = frozenset(LifecycleInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = ("placement_config",)


def check_candidate_invariants(session: Session, candidate_id: UUID) -> list[LifecycleInvariant]:
    """
    Return the invariants violated by one candidate's stored state.

    An empty list means the candidate is consistent.
    """
    candidate = session.get(Candidate, candidate_id)
    if candidate is None:
        raise CandidateNotFoundError(str(candidate_id))

    violations: list[LifecycleInvariant] = []
    stage = CandidateStage(candidate.current_stage)

    active_offers = session.execute(
        select(Offer).where(
            Offer.candidate_id == candidate.id,
            Offer.status.in_([s.value for s in ACTIVE_OFFER_STATUSES]),
        )
    ).scalars().all()

    if len(active_offers) > 1:
        violations.append(LifecycleInvariant.SINGLE_ACTIVE_OFFER)

    if active_offers:
        before_hold = (
            CandidateStage(candidate.stage_before_hold)
            if candidate.stage_before_hold else None
        )
        if not stage_matches_offer(stage, OfferStatus(active_offers[0].status), before_hold):
            violations.append(LifecycleInvariant.STAGE_OFFER_CONSISTENCY)

    joined = stage == CandidateStage.JOINED
    if joined and (candidate.revenue_earned is None or candidate.guarantee_period_ends is None):
        violations.append(LifecycleInvariant.JOINED_HAS_REVENUE)

    if not joined and candidate.revenue_earned:
        violations.append(LifecycleInvariant.REVENUE_ONLY_WHEN_JOINED)

    if (candidate.guarantee_period_ends is None) != (candidate.date_joined is None):
        violations.append(LifecycleInvariant.GUARANTEE_IFF_JOINED_ONCE)

    if joined:
        open_records = session.execute(
            select(func.count(PlacementSafetyRecord.id)).where(
                PlacementSafetyRecord.candidate_id == candidate.id,
                PlacementSafetyRecord.safety_status != SafetyStatus.RENEGE.value,
            )
        ).scalar_one()
        if open_records != 1:
            violations.append(LifecycleInvariant.JOINED_HAS_SAFETY_RECORD)

    if (
        candidate.billable_ctc is not None
        and candidate.fixed_ctc is not None
        and candidate.billable_ctc != candidate.fixed_ctc
    ):
        violations.append(LifecycleInvariant.BILLABLE_IS_FIXED)

    return violations
