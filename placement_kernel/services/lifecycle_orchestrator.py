"""
LifecycleOrchestrator -- the single entry point for placement lifecycle events.

Responsibility:
    Sequences StageMachine, OfferLedger, the Revenue Calculator and
    SafetyTracker for one external event, appends exactly one timeline
    entry, and commits the lot as one transaction.

Architecture position:
    Kernel > Services -- the only component that calls ``commit()`` or
    ``rollback()``.  Callers (UI forms, APIs, scheduled sweeps) pass the
    acting user explicitly as an ``Actor``; nothing is read from ambient
    state.

Invariants enforced:
    - Candidate stage and active offer status never diverge: every stage
      change is mirrored onto the active offer and every offer status
      change drives the stage (see ``plan_offer_mirror``).
    - "Joined" has one implementation, ``_mark_joined``, whether it comes
      from the stage dropdown or the offer status action.
    - All writes of one event commit together or not at all.  Any
      exception rolls the session back and propagates unchanged; nothing
      is retried.
    - A failed timeline write never undoes the state change: it runs in a
      SAVEPOINT, is logged as ``timeline_write_failed`` and reported in the
      outcome's ``warnings``.

Failure modes:
    - ValidationError subclasses for bad input (join date, terms, reason).
    - ConflictError subclasses for illegal moves, duplicate active offers
      and lost races (ConcurrentModificationError).
    - NotFoundError subclasses for unknown ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Mapping, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from placement_kernel.domain.clock import Clock, SystemClock
from placement_kernel.domain.policy import DEFAULT_POLICY, LifecyclePolicy
from placement_kernel.domain.revenue import RevenueRecognition, calculate_revenue
from placement_kernel.domain.safety import SafetyClassification
from placement_kernel.domain.stages import (
    OFFER_WORKFLOW,
    STAGE_FOR_OFFER_STATUS,
    CandidateStage,
    OfferStatus,
    parse_offer_status,
    parse_stage,
    plan_offer_mirror,
)
from placement_kernel.domain.validation import (
    validate_join_date,
    validate_money,
    validate_renege_reason,
)
from placement_kernel.exceptions import (
    ClientNotFoundError,
    FutureSweepDateError,
    IllegalOfferTransitionError,
    IllegalStageTransitionError,
    InvalidOfferTermsError,
    NoRenegeableOfferError,
    SafetyRecordNotFoundError,
)
from placement_kernel.logging_config import LogContext, get_logger
from placement_kernel.models.candidate import Candidate
from placement_kernel.models.client import Client
from placement_kernel.models.offer import Offer
from placement_kernel.models.timeline import ActivityType
from placement_kernel.services.offer_ledger import OfferLedger, OfferTerms
from placement_kernel.services.safety_tracker import SafetyTracker
from placement_kernel.services.stage_machine import StageMachine
from placement_kernel.services.timeline_service import TimelineService

logger = get_logger("services.lifecycle")

T = TypeVar("T")

# Reason recorded when a dropdown "dropped" reneges an accepted/joined offer
DEFAULT_DROP_REASON = "Candidate dropped"


@dataclass(frozen=True)
class Actor:
    """Who is performing a lifecycle operation."""

    actor_id: str
    role: str | None = None


@dataclass(frozen=True)
class CandidateDraft:
    """A new candidate as produced by the sourcing/resume-parsing side."""

    full_name: str
    client_id: UUID
    email: str | None = None
    phone: str | None = None
    job_title: str | None = None
    assigned_to: str | None = None
    expected_ctc: Any = None


@dataclass(frozen=True)
class CandidateOutcome:
    candidate: Candidate
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class StageTransitionOutcome:
    """Result of a stage change, including what it did to the active offer."""

    candidate: Candidate
    previous_stage: CandidateStage
    stage: CandidateStage
    offer: Offer | None = None
    revenue: RevenueRecognition | None = None
    revenue_reversed: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return self.previous_stage != self.stage


@dataclass(frozen=True)
class OfferOutcome:
    offer: Offer
    candidate: Candidate
    previous_status: OfferStatus | None
    revenue: RevenueRecognition | None = None
    revenue_reversed: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class RenegeOutcome:
    candidate: Candidate
    offer: Offer | None
    revenue_reversed: bool
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class SweepOutcome:
    """Result of a batch operation (offer expiry, safe promotion)."""

    affected: tuple[UUID, ...]
    warnings: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.affected)


@dataclass
class _JoinResult:
    offer: Offer | None
    revenue: RevenueRecognition


@dataclass
class _RenegeResult:
    offer: Offer | None
    revenue_reversed: bool
    stage_changed: bool


@dataclass
class _Call:
    """Per-call scratch state: the actor and accumulated warnings."""

    actor: Actor
    warnings: list[str] = field(default_factory=list)


class LifecycleOrchestrator:
    """
    Applies lifecycle events atomically.

    Contract:
        Every public mutating method runs in its own transaction on the
        injected session and returns a frozen outcome object.  Read-only
        methods never commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: LifecyclePolicy = DEFAULT_POLICY,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = policy
        self._stages = StageMachine(session, self._clock)
        self._offers = OfferLedger(session, self._clock, policy)
        self._safety = SafetyTracker(session, self._clock, policy)
        self._timeline = TimelineService(session, self._clock)

    # ------------------------------------------------------------------
    # Transaction and audit plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        actor: Actor,
        fn: Callable[[_Call], T],
        *,
        candidate_id: UUID | None = None,
        offer_id: UUID | None = None,
    ) -> T:
        call = _Call(actor=actor)
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor.actor_id,
            actor_role=actor.role,
            candidate_id=candidate_id,
            offer_id=offer_id,
        ):
            try:
                result = fn(call)
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning(
                    "lifecycle_operation_failed",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise
            logger.info(
                "lifecycle_operation_committed",
                extra={"operation": operation, "warnings": len(call.warnings)},
            )
            return result

    def _audit(
        self,
        call: _Call,
        candidate_id: UUID,
        activity_type: ActivityType,
        title: str,
        *,
        offer_id: UUID | None = None,
        description: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        try:
            with self._session.begin_nested():
                self._timeline.record(
                    candidate_id,
                    activity_type,
                    title,
                    actor_id=call.actor.actor_id,
                    actor_role=call.actor.role,
                    offer_id=offer_id,
                    description=description,
                    payload=payload,
                )
        except SQLAlchemyError as exc:
            logger.warning(
                "timeline_write_failed",
                extra={"activity_type": activity_type.value},
                exc_info=True,
            )
            call.warnings.append(
                f"Timeline entry '{activity_type.value}' was not recorded: "
                f"{type(exc).__name__}"
            )

    def _sweep_day(self, sweep: str, as_of: date | None) -> date:
        today = self._clock.today()
        if as_of is None:
            return today
        # Past dates replay a sweep; future dates are refused.
        if as_of > today:
            raise FutureSweepDateError(sweep, as_of.isoformat(), today.isoformat())
        return as_of

    def _client_for(self, candidate: Candidate) -> Client:
        client = self._session.get(Client, candidate.client_id)
        if client is None:
            raise ClientNotFoundError(str(candidate.client_id))
        return client

    # ------------------------------------------------------------------
    # Candidate registration
    # ------------------------------------------------------------------

    def register_candidate(self, draft: CandidateDraft, actor: Actor) -> CandidateOutcome:
        """Create a candidate in ``sourced``."""

        def _do(call: _Call) -> CandidateOutcome:
            if self._session.get(Client, draft.client_id) is None:
                raise ClientNotFoundError(str(draft.client_id))
            expected = None
            if draft.expected_ctc is not None:
                expected = validate_money("expected_ctc", draft.expected_ctc)

            now = self._clock.now()
            candidate = Candidate(
                full_name=draft.full_name,
                client_id=draft.client_id,
                email=draft.email,
                phone=draft.phone,
                job_title=draft.job_title,
                assigned_to=draft.assigned_to,
                expected_ctc=expected,
                current_stage=CandidateStage.SOURCED.value,
                date_sourced=now,
                last_activity_date=now,
                created_by_id=call.actor.actor_id,
            )
            self._session.add(candidate)
            self._session.flush()

            logger.info("candidate_registered", extra={"candidate_id": str(candidate.id)})
            self._audit(
                call,
                candidate.id,
                ActivityType.CANDIDATE_CREATED,
                f"Candidate {candidate.full_name} sourced",
                payload={"client_id": draft.client_id, "job_title": draft.job_title},
            )
            return CandidateOutcome(candidate, tuple(call.warnings))

        return self._run("register_candidate", actor, _do)

    # ------------------------------------------------------------------
    # Stage machine surface
    # ------------------------------------------------------------------

    def transition_stage(
        self,
        candidate_id: UUID,
        target_stage: CandidateStage | str,
        actor: Actor,
        joining_date: date | str | None = None,
    ) -> StageTransitionOutcome:
        """
        Move a candidate to any stage, mirroring the change onto its offer.

        ``joining_date`` is required (and only used) when the target is
        ``joined``.  Moving to the current stage is a no-op with no
        timeline entry.
        """
        target = parse_stage(target_stage)

        def _do(call: _Call) -> StageTransitionOutcome:
            candidate = self._stages.get_candidate(candidate_id)
            return self._transition(call, candidate, target, joining_date)

        return self._run(
            "transition_stage", actor, _do, candidate_id=candidate_id
        )

    def resume_from_hold(self, candidate_id: UUID, actor: Actor) -> StageTransitionOutcome:
        """Return an on-hold candidate to the stage it was parked from."""

        def _do(call: _Call) -> StageTransitionOutcome:
            candidate = self._stages.get_candidate(candidate_id)
            if candidate.stage != CandidateStage.ON_HOLD:
                raise IllegalStageTransitionError(
                    str(candidate.id),
                    candidate.current_stage,
                    candidate.stage_before_hold or CandidateStage.SOURCED.value,
                    "candidate is not on hold",
                )
            target = parse_stage(candidate.stage_before_hold or CandidateStage.SOURCED)
            return self._transition(
                call, candidate, target, None, activity=ActivityType.RESUMED_FROM_HOLD
            )

        return self._run("resume_from_hold", actor, _do, candidate_id=candidate_id)

    def _transition(
        self,
        call: _Call,
        candidate: Candidate,
        target: CandidateStage,
        joining_date: date | str | None,
        activity: ActivityType = ActivityType.STAGE_CHANGED,
    ) -> StageTransitionOutcome:
        previous = candidate.stage
        if previous == target:
            logger.info("stage_transition_noop", extra={"stage": target.value})
            return StageTransitionOutcome(candidate, previous, target)

        self._stages.ensure_allowed(candidate, target)
        offer = self._offers.get_active_offer(candidate.id)
        offer_status = offer.offer_status if offer is not None else None

        mirror = plan_offer_mirror(target, offer_status)
        if not mirror.allowed:
            raise IllegalStageTransitionError(
                str(candidate.id), previous.value, target.value, mirror.reason
            )

        if target == CandidateStage.JOINED:
            joined = self._mark_joined(call, candidate, offer, joining_date)
            return StageTransitionOutcome(
                candidate,
                previous,
                candidate.stage,
                offer=joined.offer,
                revenue=joined.revenue,
                warnings=tuple(call.warnings),
            )

        leaving_joined = previous == CandidateStage.JOINED and target == CandidateStage.DROPPED
        if mirror.offer_status == OfferStatus.RENEGE or leaving_joined:
            result = self._renege(call, candidate, offer, DEFAULT_DROP_REASON)
            return StageTransitionOutcome(
                candidate,
                previous,
                candidate.stage,
                offer=result.offer,
                revenue_reversed=result.revenue_reversed,
                warnings=tuple(call.warnings),
            )

        offer_change = None
        if mirror.offer_status is not None:
            offer_change = {"from": offer.status, "to": mirror.offer_status.value}
            self._offers.set_status(offer, mirror.offer_status, call.actor.actor_id)

        self._stages.move(candidate, target, call.actor.actor_id)

        self._audit(
            call,
            candidate.id,
            activity,
            f"Stage changed from {previous.value} to {target.value}",
            offer_id=offer.id if offer is not None else None,
            payload={
                "old": {"stage": previous.value},
                "new": {"stage": target.value},
                "offer_status": offer_change,
            },
        )
        return StageTransitionOutcome(
            candidate, previous, target, offer=offer, warnings=tuple(call.warnings)
        )

    # ------------------------------------------------------------------
    # Offer ledger surface
    # ------------------------------------------------------------------

    def create_offer(
        self,
        candidate_id: UUID,
        terms: OfferTerms,
        actor: Actor,
    ) -> OfferOutcome:
        """
        Extend a new offer and move the candidate to ``offer_extended``.

        Raises:
            ActiveOfferExistsError: Candidate already has an active offer.
        """

        def _do(call: _Call) -> OfferOutcome:
            candidate = self._stages.get_candidate(candidate_id)
            client = self._client_for(candidate)
            previous = candidate.stage

            offer = self._offers.create(candidate, client, terms, call.actor.actor_id)
            if previous != CandidateStage.OFFER_EXTENDED:
                self._stages.ensure_allowed(candidate, CandidateStage.OFFER_EXTENDED)

            self._mirror_compensation(candidate, offer)
            if previous != CandidateStage.OFFER_EXTENDED:
                self._stages.move(candidate, CandidateStage.OFFER_EXTENDED, call.actor.actor_id)

            self._audit(
                call,
                candidate.id,
                ActivityType.OFFER_CREATED,
                f"Offer extended: {offer.designation or candidate.job_title or 'role'}",
                offer_id=offer.id,
                payload={
                    "old": {"stage": previous.value},
                    "new": {
                        "stage": CandidateStage.OFFER_EXTENDED.value,
                        "offer_status": offer.status,
                        "fixed_ctc": offer.fixed_ctc,
                        "variable_ctc": offer.variable_ctc,
                        "offered_ctc": offer.offered_ctc,
                        "revenue_percentage": offer.revenue_percentage,
                        "expected_joining_date": offer.expected_joining_date,
                    },
                },
            )
            return OfferOutcome(offer, candidate, None, warnings=tuple(call.warnings))

        return self._run("create_offer", actor, _do, candidate_id=candidate_id)

    def update_offer_terms(
        self,
        offer_id: UUID,
        changes: Mapping[str, Any],
        actor: Actor,
    ) -> OfferOutcome:
        """Edit compensation, dates or job details of an ``extended`` offer."""

        def _do(call: _Call) -> OfferOutcome:
            offer = self._offers.get(offer_id)
            candidate = self._stages.get_candidate(offer.candidate_id)
            diff = self._offers.update_terms(offer, changes, call.actor.actor_id)
            if diff:
                self._mirror_compensation(candidate, offer)
                self._audit(
                    call,
                    candidate.id,
                    ActivityType.OFFER_UPDATED,
                    "Offer terms updated",
                    offer_id=offer.id,
                    payload={
                        "old": {k: old for k, (old, _) in diff.items()},
                        "new": {k: new for k, (_, new) in diff.items()},
                    },
                )
            return OfferOutcome(
                offer, candidate, offer.offer_status, warnings=tuple(call.warnings)
            )

        return self._run(
            "update_offer_terms", actor, _do, offer_id=offer_id
        )

    def update_offer_status(
        self,
        offer_id: UUID,
        new_status: OfferStatus | str,
        actor: Actor,
        joining_date: date | str | None = None,
        reason: str | None = None,
    ) -> OfferOutcome:
        """
        Move an offer along its lifecycle and drive the candidate's stage.

        ``joining_date`` is required for ``joined``; ``reason`` is required
        for ``renege`` and recorded as the rejection reason for
        ``rejected``.

        Raises:
            IllegalOfferTransitionError: e.g. ``rejected -> joined``.
            MissingJoinDateError: ``joined`` without a date.
        """
        status = parse_offer_status(new_status)

        def _do(call: _Call) -> OfferOutcome:
            offer = self._offers.get(offer_id)
            candidate = self._stages.get_candidate(offer.candidate_id)
            previous = offer.offer_status

            if previous == status:
                logger.info("offer_status_noop", extra={"status": status.value})
                return OfferOutcome(offer, candidate, previous)

            if not OFFER_WORKFLOW.allows(previous.value, status.value):
                raise IllegalOfferTransitionError(str(offer.id), previous.value, status.value)

            if status == OfferStatus.JOINED:
                joined = self._mark_joined(call, candidate, offer, joining_date)
                return OfferOutcome(
                    offer, candidate, previous,
                    revenue=joined.revenue, warnings=tuple(call.warnings),
                )

            if status == OfferStatus.RENEGE:
                result = self._renege(call, candidate, offer, reason)
                return OfferOutcome(
                    offer, candidate, previous,
                    revenue_reversed=result.revenue_reversed,
                    warnings=tuple(call.warnings),
                )

            extra: dict[str, Any] = {}
            if status == OfferStatus.REJECTED and reason:
                extra["rejection_reason"] = reason
            self._offers.set_status(offer, status, call.actor.actor_id, **extra)

            stage_before = candidate.stage
            target = STAGE_FOR_OFFER_STATUS.get(status)
            if target is not None and candidate.stage != target:
                self._stages.move(candidate, target, call.actor.actor_id)

            self._audit(
                call,
                candidate.id,
                ActivityType.OFFER_STATUS_CHANGED,
                f"Offer {previous.value} -> {status.value}",
                offer_id=offer.id,
                description=reason,
                payload={
                    "old": {"offer_status": previous.value, "stage": stage_before.value},
                    "new": {"offer_status": status.value, "stage": candidate.current_stage},
                },
            )
            return OfferOutcome(offer, candidate, previous, warnings=tuple(call.warnings))

        return self._run("update_offer_status", actor, _do, offer_id=offer_id)

    def _mirror_compensation(self, candidate: Candidate, offer: Offer) -> None:
        candidate.fixed_ctc = offer.fixed_ctc
        candidate.variable_ctc = offer.variable_ctc
        candidate.offered_ctc = offer.offered_ctc
        candidate.billable_ctc = offer.billable_ctc
        candidate.revenue_percentage = offer.revenue_percentage
        self._session.flush()

    # ------------------------------------------------------------------
    # Joined (both surfaces)
    # ------------------------------------------------------------------

    def _mark_joined(
        self,
        call: _Call,
        candidate: Candidate,
        offer: Offer | None,
        joining_date: date | str | None,
    ) -> _JoinResult:
        """
        The one implementation of "candidate joined".

        Recognises revenue from the offer's captured fee (or, with no offer,
        from the candidate's fixed CTC and the client's current fee), moves
        the offer to ``joined`` (accepting an extended offer first), moves
        the candidate to ``joined`` and opens the safety record.
        """
        joined_on = validate_join_date(candidate.id, joining_date, self._clock.today())
        client = self._client_for(candidate)
        actor_id = call.actor.actor_id
        previous_stage = candidate.stage

        if offer is not None:
            if offer.status == OfferStatus.EXTENDED.value:
                self._offers.set_status(offer, OfferStatus.ACCEPTED, actor_id)
            self._offers.set_status(
                offer, OfferStatus.JOINED, actor_id, actual_joining_date=joined_on
            )
            fixed = offer.fixed_ctc
            fee = offer.revenue_percentage
        else:
            if candidate.fixed_ctc is None:
                raise InvalidOfferTermsError(
                    "fixed_ctc", "required to mark a candidate joined without an offer"
                )
            fixed = candidate.fixed_ctc
            fee = client.fee_percentage
            if fee is None:
                fee = self._policy.default_fee_percentage

        revenue = calculate_revenue(fixed, fee, joined_on, self._policy.money_places)

        self._stages.move(
            candidate,
            CandidateStage.JOINED,
            actor_id,
            joined_on=joined_on,
            extra_values={
                "billable_ctc": revenue.billable_ctc,
                "revenue_percentage": revenue.fee_percentage,
                "revenue_earned": revenue.recognized_revenue,
                "revenue_month": revenue.revenue_month,
                "revenue_year": revenue.year,
                "renege_reason": None,
                "renege_date": None,
            },
        )
        self._safety.open_record(
            candidate, client, offer, joined_on, revenue.recognized_revenue, actor_id
        )

        logger.info(
            "candidate_joined",
            extra={
                "joining_date": joined_on,
                "recognized_revenue": revenue.recognized_revenue,
                "revenue_month": revenue.revenue_month,
            },
        )
        self._audit(
            call,
            candidate.id,
            ActivityType.CANDIDATE_JOINED,
            f"Joined on {joined_on.isoformat()}",
            offer_id=offer.id if offer is not None else None,
            payload={
                "old": {"stage": previous_stage.value},
                "new": {
                    "stage": CandidateStage.JOINED.value,
                    "offer_status": offer.status if offer is not None else None,
                    "joining_date": joined_on,
                    "billable_ctc": revenue.billable_ctc,
                    "revenue_percentage": revenue.fee_percentage,
                    "revenue_earned": revenue.recognized_revenue,
                    "revenue_month": revenue.revenue_month,
                    "guarantee_period_ends": candidate.guarantee_period_ends,
                },
            },
        )
        return _JoinResult(offer=offer, revenue=revenue)

    # ------------------------------------------------------------------
    # Renege
    # ------------------------------------------------------------------

    def record_renege(
        self,
        candidate_id: UUID,
        reason: str,
        actor: Actor,
    ) -> RenegeOutcome:
        """
        Record that an accepted or joined candidate fell through.

        ``revenue_reversed`` is True only when recognised revenue was
        zeroed (a joined placement inside its guarantee window).
        """

        def _do(call: _Call) -> RenegeOutcome:
            candidate = self._stages.get_candidate(candidate_id)
            offer = self._offers.get_active_offer(candidate.id)
            result = self._renege(call, candidate, offer, reason)
            return RenegeOutcome(
                candidate, result.offer, result.revenue_reversed, tuple(call.warnings)
            )

        return self._run("record_renege", actor, _do, candidate_id=candidate_id)

    def _renege(
        self,
        call: _Call,
        candidate: Candidate,
        offer: Offer | None,
        reason: str | None,
    ) -> _RenegeResult:
        reason = validate_renege_reason(candidate.id, reason)
        today = self._clock.today()
        actor_id = call.actor.actor_id
        previous_stage = candidate.stage
        renege_values = {"renege_reason": reason, "renege_date": today}

        if offer is not None and offer.status == OfferStatus.ACCEPTED.value:
            self._offers.set_status(offer, OfferStatus.RENEGE, actor_id, **renege_values)
            self._stages.move(candidate, CandidateStage.DROPPED, actor_id, extra_values=renege_values)
            reversed_revenue = False
            stage_changed = True
        elif candidate.stage == CandidateStage.JOINED:
            record = self._safety.get_open_record(candidate.id)
            if record is None:
                raise SafetyRecordNotFoundError(str(candidate.id))
            reversed_revenue = self._safety.record_renege(
                record, candidate, reason, today, actor_id
            )
            stage_changed = reversed_revenue
            if reversed_revenue:
                if offer is not None:
                    self._offers.set_status(
                        offer, OfferStatus.RENEGE, actor_id, **renege_values
                    )
                self._stages.move(
                    candidate, CandidateStage.DROPPED, actor_id, extra_values=renege_values
                )
            else:
                call.warnings.append(
                    f"Guarantee period ended {record.guarantee_period_ends.isoformat()}: "
                    "renege not applied, placement kept as safe and revenue retained"
                )
        else:
            raise NoRenegeableOfferError(str(candidate.id), candidate.current_stage)

        self._audit(
            call,
            candidate.id,
            ActivityType.RENEGE_RECORDED,
            "Renege recorded" if stage_changed else "Left after guarantee period",
            offer_id=offer.id if offer is not None else None,
            description=reason,
            payload={
                "old": {"stage": previous_stage.value},
                "new": {
                    "stage": candidate.current_stage,
                    "offer_status": offer.status if offer is not None else None,
                    "revenue_earned": candidate.revenue_earned,
                    "placement_status": candidate.placement_status,
                },
                "reason": reason,
                "renege_date": today,
                "revenue_reversed": reversed_revenue,
            },
        )
        return _RenegeResult(offer, reversed_revenue, stage_changed)

    # ------------------------------------------------------------------
    # Guarantee safety surface
    # ------------------------------------------------------------------

    def get_safety_classification(
        self,
        candidate_id: UUID,
        as_of: date | None = None,
    ) -> SafetyClassification:
        """Recompute the candidate's guarantee classification (read-only)."""
        candidate = self._stages.get_candidate(candidate_id)
        record = self._safety.get_current_record(candidate.id)
        if record is None:
            raise SafetyRecordNotFoundError(str(candidate_id))
        return self._safety.classify(record, as_of)

    def promote_safe_placements(
        self,
        actor: Actor,
        as_of: date | None = None,
    ) -> SweepOutcome:
        """Promote every placement whose guarantee window has elapsed."""

        def _do(call: _Call) -> SweepOutcome:
            day = self._sweep_day("promote_safe_placements", as_of)
            promoted: list[UUID] = []
            for record in self._safety.promotable(day):
                candidate = self._stages.get_candidate(record.candidate_id)
                if not self._safety.promote_safe(record, candidate, call.actor.actor_id):
                    continue
                promoted.append(candidate.id)
                self._audit(
                    call,
                    candidate.id,
                    ActivityType.PLACEMENT_SAFE,
                    "Placement safe: guarantee period completed",
                    offer_id=record.offer_id,
                    payload={
                        "guarantee_period_ends": record.guarantee_period_ends,
                        "revenue_earned": candidate.revenue_earned,
                    },
                )
            logger.info("safe_promotion_sweep", extra={"promoted": len(promoted), "as_of": day})
            return SweepOutcome(tuple(promoted), tuple(call.warnings))

        return self._run("promote_safe_placements", actor, _do)

    def refresh_safety_cache(self, actor: Actor, as_of: date | None = None) -> int:
        """Rewrite cached tiers from the date-driven classification."""
        day = as_of or self._clock.today()
        return self._run(
            "refresh_safety_cache", actor, lambda call: self._safety.refresh_cache(day)
        )

    def record_followup(
        self,
        candidate_id: UUID,
        actor: Actor,
        note: str | None = None,
    ) -> CandidateOutcome:
        """Stamp a placement-monitor follow-up on the candidate's open record."""

        def _do(call: _Call) -> CandidateOutcome:
            candidate = self._stages.get_candidate(candidate_id)
            record = self._safety.get_open_record(candidate.id)
            if record is None:
                raise SafetyRecordNotFoundError(str(candidate_id))
            self._safety.record_followup(record, note, call.actor.actor_id)
            self._audit(
                call,
                candidate.id,
                ActivityType.FOLLOWUP_RECORDED,
                "Placement follow-up",
                description=note,
                payload={"followup_date": record.last_followup_date},
            )
            return CandidateOutcome(candidate, tuple(call.warnings))

        return self._run("record_followup", actor, _do, candidate_id=candidate_id)

    # ------------------------------------------------------------------
    # Offer expiry
    # ------------------------------------------------------------------

    def expire_offers(self, actor: Actor, as_of: date | None = None) -> SweepOutcome:
        """
        Expire extended offers past ``offer_valid_until``.

        The candidate's stage is left as is; a new offer may be created.
        """

        def _do(call: _Call) -> SweepOutcome:
            day = self._sweep_day("expire_offers", as_of)
            expired: list[UUID] = []
            for offer in self._offers.expirable(day):
                self._offers.set_status(offer, OfferStatus.EXPIRED, call.actor.actor_id)
                expired.append(offer.id)
                self._audit(
                    call,
                    offer.candidate_id,
                    ActivityType.OFFER_EXPIRED,
                    "Offer expired",
                    offer_id=offer.id,
                    payload={
                        "old": {"offer_status": OfferStatus.EXTENDED.value},
                        "new": {"offer_status": OfferStatus.EXPIRED.value},
                        "offer_valid_until": offer.offer_valid_until,
                    },
                )
            logger.info("offer_expiry_sweep", extra={"expired": len(expired), "as_of": day})
            return SweepOutcome(tuple(expired), tuple(call.warnings))

        return self._run("expire_offers", actor, _do)


__all__ = [
    "Actor",
    "CandidateDraft",
    "CandidateOutcome",
    "DEFAULT_DROP_REASON",
    "LifecycleOrchestrator",
    "OfferOutcome",
    "RenegeOutcome",
    "StageTransitionOutcome",
    "SweepOutcome",
]
