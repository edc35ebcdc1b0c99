"""
PlacementSelector -- read models for the placement monitor and revenue views.

Safety tiers are derived on read from ``guarantee_period_ends``; the cached
``safety_status`` column is never trusted here.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from placement_kernel.db.types import round_money
from placement_kernel.domain.safety import (
    OPEN_SAFETY_STATUSES,
    SafetyStatus,
    SafetyThresholds,
    classify,
)
from placement_kernel.domain.stages import CandidateStage
from placement_kernel.models.candidate import Candidate
from placement_kernel.models.placement_safety import PlacementSafetyRecord
from placement_kernel.selectors.base import BaseSelector

_WATCHED = frozenset({SafetyStatus.MONITORING, SafetyStatus.AT_RISK, SafetyStatus.CRITICAL})


@dataclass(frozen=True)
class WatchListItem:
    candidate_id: UUID
    full_name: str
    client_id: UUID
    recruiter_id: str | None
    joining_date: date
    guarantee_period_ends: date
    days_remaining: int
    status: SafetyStatus
    revenue_amount: Decimal
    last_followup_date: date | None


@dataclass(frozen=True)
class MonthlyRevenue:
    revenue_month: str
    placements: int
    revenue: Decimal


class PlacementSelector(BaseSelector[PlacementSafetyRecord]):

    def __init__(self, session, thresholds: SafetyThresholds | None = None):
        super().__init__(session)
        self._thresholds = thresholds or SafetyThresholds()

    def _open_records(self):
        return self.session.execute(
            select(PlacementSafetyRecord, Candidate)
            .join(Candidate, Candidate.id == PlacementSafetyRecord.candidate_id)
            .where(
                PlacementSafetyRecord.safety_status.in_(
                    [s.value for s in OPEN_SAFETY_STATUSES]
                )
            )
        ).all()

    def watch_list(self, as_of: date, limit: int | None = None) -> list[WatchListItem]:
        """
        Placements still inside their guarantee window, most urgent first.

        Args:
            as_of: Evaluation date.
            limit: Maximum number of items, None for all.
        """
        items = []
        for record, candidate in self._open_records():
            c = classify(
                record.guarantee_period_ends,
                as_of,
                promoted=record.promoted_safe_at is not None,
                thresholds=self._thresholds,
            )
            if c.status not in _WATCHED:
                continue
            items.append(
                WatchListItem(
                    candidate_id=candidate.id,
                    full_name=candidate.full_name,
                    client_id=record.client_id,
                    recruiter_id=record.recruiter_id,
                    joining_date=record.joining_date,
                    guarantee_period_ends=record.guarantee_period_ends,
                    days_remaining=c.days_remaining,
                    status=c.status,
                    revenue_amount=record.revenue_amount,
                    last_followup_date=record.last_followup_date,
                )
            )
        items.sort(key=lambda i: (i.days_remaining, i.full_name))
        return items[:limit] if limit is not None else items

    def status_counts(self, as_of: date) -> dict[SafetyStatus, int]:
        """Number of placements per derived tier (reneged records included)."""
        rows = self.session.execute(select(PlacementSafetyRecord)).scalars().all()
        counts = Counter(
            classify(
                r.guarantee_period_ends,
                as_of,
                reneged=r.safety_status == SafetyStatus.RENEGE.value,
                promoted=r.promoted_safe_at is not None,
                thresholds=self._thresholds,
            ).status
            for r in rows
        )
        return {status: counts.get(status, 0) for status in SafetyStatus}

    def revenue_by_month(self, year: int) -> list[MonthlyRevenue]:
        """
        Recognised revenue per accounting month of ``year``.

        Only candidates currently ``joined`` count, so reversed placements
        drop out automatically.
        """
        rows = self.session.execute(
            select(
                Candidate.revenue_month,
                func.count(Candidate.id),
                func.sum(Candidate.revenue_earned),
            )
            .where(
                Candidate.revenue_year == year,
                Candidate.current_stage == CandidateStage.JOINED.value,
            )
            .group_by(Candidate.revenue_month)
            .order_by(Candidate.revenue_month)
        ).all()
        return [
            MonthlyRevenue(
                revenue_month=month,
                placements=count,
                revenue=round_money(Decimal(str(total or 0))),
            )
            for month, count, total in rows
        ]
