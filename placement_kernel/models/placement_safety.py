"""
Module: placement_kernel.models.placement_safety
Responsibility: ORM persistence for the guarantee safety record opened when
    a candidate joins.
Architecture position: Kernel > Models.

``days_remaining`` and ``safety_status`` are a cache.  The SafetyTracker
recomputes them from ``guarantee_period_ends`` on every read; tests and
invariant checks use the recomputed values.

One open (non-renege) record per candidate is enforced by the partial
unique index ``uq_safety_one_open_per_candidate``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TrackedBase, UUIDString
from placement_kernel.domain.safety import DEFAULT_GUARANTEE_DAYS, SafetyStatus

_OPEN_RECORD_PREDICATE = text("safety_status <> 'renege'")


class PlacementSafetyRecord(TrackedBase):
    """Guarantee window of one placement."""

    __tablename__ = "placement_safety_records"

    __table_args__ = (
        Index(
            "uq_safety_one_open_per_candidate",
            "candidate_id",
            unique=True,
            postgresql_where=_OPEN_RECORD_PREDICATE,
            sqlite_where=_OPEN_RECORD_PREDICATE,
        ),
        Index("idx_safety_period_end", "guarantee_period_ends"),
        Index("idx_safety_status", "safety_status"),
    )

    candidate_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("candidates.id"),
        nullable=False,
    )
    offer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("offers.id"),
        nullable=True,
    )
    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )
    recruiter_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    joining_date: Mapped[date] = mapped_column(nullable=False)
    guarantee_period_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_GUARANTEE_DAYS,
    )
    guarantee_period_ends: Mapped[date] = mapped_column(nullable=False)

    # Cached classification
    days_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    safety_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=SafetyStatus.MONITORING.value,
    )
    is_safe: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    promoted_safe_at: Mapped[datetime | None] = mapped_column(nullable=True)

    revenue_amount: Mapped[Decimal] = mapped_column(nullable=False)
    revenue_reversed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    renege_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    renege_date: Mapped[date | None] = mapped_column(nullable=True)

    last_followup_date: Mapped[date | None] = mapped_column(nullable=True)
    followup_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.safety_status != SafetyStatus.RENEGE.value

    def __repr__(self) -> str:
        return (
            f"<PlacementSafetyRecord candidate={self.candidate_id} "
            f"[{self.safety_status}] ends={self.guarantee_period_ends}>"
        )
