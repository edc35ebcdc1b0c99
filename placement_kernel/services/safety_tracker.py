"""
SafetyTracker -- guarantee window of joined placements.

Responsibility:
    Opens the safety record when a candidate joins, classifies it on read,
    reverses recognised revenue when a candidate leaves inside the window,
    and promotes elapsed windows to ``safe``.

Architecture position:
    Kernel > Services -- flush-only; called by LifecycleOrchestrator.

Invariants enforced:
    - One open (non-renege) record per candidate (partial unique index).
    - Classification is derived from ``guarantee_period_ends`` and today;
      the stored ``days_remaining``/``safety_status`` and the candidate's
      ``placement_status``/``is_placement_safe`` are a cache written only
      here.
    - Revenue is reversed only for a renege on or before the window end of
      a placement not already promoted safe.
    - The tracker never blocks a stage or offer transition.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from placement_kernel.domain.clock import Clock
from placement_kernel.domain.policy import DEFAULT_POLICY, LifecyclePolicy
from placement_kernel.domain.safety import (
    OPEN_SAFETY_STATUSES,
    SAFETY_WORKFLOW,
    SafetyClassification,
    SafetyStatus,
    classify,
    guarantee_period_end,
    tier_for,
    within_window,
)
from placement_kernel.exceptions import ConcurrentModificationError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.candidate import Candidate
from placement_kernel.models.client import Client
from placement_kernel.models.offer import Offer
from placement_kernel.models.placement_safety import PlacementSafetyRecord
from placement_kernel.services.base import BaseService

logger = get_logger("services.safety_tracker")

_OPEN_VALUES = [s.value for s in OPEN_SAFETY_STATUSES]


class SafetyTracker(BaseService[PlacementSafetyRecord]):

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        policy: LifecyclePolicy = DEFAULT_POLICY,
    ):
        super().__init__(session, clock)
        self._policy = policy

    # Reads

    def get_open_record(self, candidate_id: UUID) -> PlacementSafetyRecord | None:
        """The candidate's record that is not reneged (monitoring..safe)."""
        return self.session.execute(
            select(PlacementSafetyRecord).where(
                PlacementSafetyRecord.candidate_id == candidate_id,
                PlacementSafetyRecord.safety_status != SafetyStatus.RENEGE.value,
            )
        ).scalar_one_or_none()

    def get_current_record(self, candidate_id: UUID) -> PlacementSafetyRecord | None:
        """Open record if any, otherwise the most recent reneged one."""
        record = self.get_open_record(candidate_id)
        if record is not None:
            return record
        return self.session.execute(
            select(PlacementSafetyRecord)
            .where(PlacementSafetyRecord.candidate_id == candidate_id)
            .order_by(
                PlacementSafetyRecord.joining_date.desc(),
                PlacementSafetyRecord.created_at.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()

    def classify(
        self,
        record: PlacementSafetyRecord,
        today: date | None = None,
    ) -> SafetyClassification:
        return classify(
            record.guarantee_period_ends,
            today or self.clock.today(),
            reneged=record.safety_status == SafetyStatus.RENEGE.value,
            promoted=record.promoted_safe_at is not None,
            thresholds=self._policy.thresholds,
        )

    # Writes

    def open_record(
        self,
        candidate: Candidate,
        client: Client,
        offer: Offer | None,
        joining_date: date,
        revenue_amount: Decimal,
        actor_id: str,
    ) -> PlacementSafetyRecord:
        """
        Open the guarantee window for a candidate who joined on ``joining_date``.

        Also sets the candidate's ``guarantee_period_ends`` and safety cache.
        """
        days = client.replacement_guarantee_days
        if days is None:
            days = self._policy.default_guarantee_days
        ends = guarantee_period_end(joining_date, days)
        classification = classify(
            ends, self.clock.today(), thresholds=self._policy.thresholds
        )

        record = PlacementSafetyRecord(
            candidate_id=candidate.id,
            offer_id=offer.id if offer is not None else None,
            client_id=client.id,
            recruiter_id=candidate.assigned_to,
            joining_date=joining_date,
            guarantee_period_days=days,
            guarantee_period_ends=ends,
            days_remaining=classification.days_remaining,
            safety_status=SafetyStatus.MONITORING.value,
            is_safe=False,
            revenue_amount=revenue_amount,
            revenue_reversed=False,
            created_by_id=actor_id,
        )
        try:
            with self.session.begin_nested():
                self.session.add(record)
        except IntegrityError:
            raise ConcurrentModificationError(
                entity_type="PlacementSafetyRecord",
                entity_id=str(candidate.id),
                expected="without an open safety record",
            ) from None

        candidate.guarantee_period_ends = ends
        candidate.is_placement_safe = False
        candidate.placement_status = SafetyStatus.MONITORING.value
        self.session.flush()

        logger.info(
            "safety_record_opened",
            extra={
                "guarantee_period_ends": ends,
                "guarantee_period_days": days,
            },
        )
        return record

    def record_renege(
        self,
        record: PlacementSafetyRecord,
        candidate: Candidate,
        reason: str,
        renege_date: date,
        actor_id: str,
    ) -> bool:
        """
        Apply a renege to a joined placement.

        Inside the window (and not yet promoted) the revenue is reversed to
        zero and the record closes as ``renege``; returns True.  After the
        window the placement is promoted ``safe`` instead and revenue is
        left untouched; returns False.
        """
        inside = (
            within_window(record.guarantee_period_ends, renege_date)
            and record.promoted_safe_at is None
        )
        if not inside:
            self.promote_safe(record, candidate, actor_id)
            logger.info(
                "renege_after_guarantee",
                extra={"guarantee_period_ends": record.guarantee_period_ends},
            )
            return False

        reversed_amount = candidate.revenue_earned
        self._conditional_update(
            record,
            PlacementSafetyRecord.safety_status,
            record.safety_status,
            {
                "safety_status": SafetyStatus.RENEGE.value,
                "is_safe": False,
                "revenue_reversed": True,
                "renege_reason": reason,
                "renege_date": renege_date,
                "days_remaining": classify(
                    record.guarantee_period_ends, renege_date
                ).days_remaining,
                "updated_by_id": actor_id,
            },
        )
        candidate.revenue_earned = Decimal("0")
        candidate.is_placement_safe = False
        candidate.placement_status = SafetyStatus.RENEGE.value
        self.session.flush()

        logger.warning(
            "revenue_reversed",
            extra={
                "reversed_amount": reversed_amount,
                "renege_date": renege_date,
                "guarantee_period_ends": record.guarantee_period_ends,
            },
        )
        return True

    def promote_safe(
        self,
        record: PlacementSafetyRecord,
        candidate: Candidate,
        actor_id: str,
    ) -> bool:
        """Mark the placement safe.  Returns False if it already was."""
        current = record.safety_status
        if not SAFETY_WORKFLOW.allows(current, SafetyStatus.SAFE.value):
            return False

        self._conditional_update(
            record,
            PlacementSafetyRecord.safety_status,
            current,
            {
                "safety_status": SafetyStatus.SAFE.value,
                "is_safe": True,
                "days_remaining": 0,
                "promoted_safe_at": self.clock.now(),
                "updated_by_id": actor_id,
            },
        )
        candidate.is_placement_safe = True
        candidate.placement_status = SafetyStatus.SAFE.value
        self.session.flush()

        logger.info("placement_promoted_safe", extra={"candidate_id": str(candidate.id)})
        return True

    def promotable(self, as_of: date) -> list[PlacementSafetyRecord]:
        """Open, unpromoted records with no days remaining as of ``as_of``."""
        return list(
            self.session.execute(
                select(PlacementSafetyRecord)
                .where(
                    PlacementSafetyRecord.safety_status.in_(_OPEN_VALUES),
                    PlacementSafetyRecord.guarantee_period_ends <= as_of,
                )
                .order_by(PlacementSafetyRecord.guarantee_period_ends)
            ).scalars()
        )

    def refresh_cache(self, as_of: date) -> int:
        """
        Rewrite cached days_remaining/safety_status of open records.

        Elapsed windows stay ``critical`` with zero days until promoted.
        Returns the number of records whose cache changed.
        """
        records = self.session.execute(
            select(PlacementSafetyRecord).where(
                PlacementSafetyRecord.safety_status.in_(_OPEN_VALUES)
            )
        ).scalars().all()

        changed = 0
        for record in records:
            remaining = classify(record.guarantee_period_ends, as_of).days_remaining
            status = tier_for(remaining, self._policy.thresholds).value
            if record.days_remaining == remaining and record.safety_status == status:
                continue
            record.days_remaining = remaining
            record.safety_status = status
            candidate = self.session.get(Candidate, record.candidate_id)
            if candidate is not None:
                candidate.placement_status = status
            changed += 1

        self.session.flush()
        logger.info("safety_cache_refreshed", extra={"records_changed": changed})
        return changed

    def record_followup(
        self,
        record: PlacementSafetyRecord,
        note: str | None,
        actor_id: str,
    ) -> None:
        record.last_followup_date = self.clock.today()
        record.followup_note = note
        record.updated_by_id = actor_id
        self.session.flush()
