"""
Module: placement_kernel.models.candidate
Responsibility: ORM persistence for a candidate's pipeline position,
    compensation, recognised revenue and guarantee state.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - ``current_stage`` is the single source of truth for pipeline position.
    - ``billable_ctc`` always equals the fixed portion of compensation.
    - Candidates are never hard-deleted (ORM listener in db/immutability.py).
    - Stage, revenue and guarantee columns are written only through the
      lifecycle services; ``current_stage`` changes are conditional UPDATEs
      keyed on the previous stage.

Audit relevance:
    Terminal candidates (joined, rejected, dropped) are retained for
    revenue history.  Every change is mirrored by a TimelineEntry.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from placement_kernel.db.base import TrackedBase, UUIDString
from placement_kernel.db.types import percentage_column_type
from placement_kernel.domain.stages import CandidateStage


class Candidate(TrackedBase):
    """
    A person moving through the hiring pipeline for one client role.

    Guarantees:
        - revenue_earned / revenue_month / revenue_year are populated only
          once the candidate reaches ``joined``.
        - guarantee_period_ends is set iff the candidate has joined at
          least once.
        - is_placement_safe / placement_status are a cache maintained by
          the SafetyTracker; the date-driven classification is ground truth.
    """

    __tablename__ = "candidates"

    __table_args__ = (
        Index("idx_candidate_stage", "current_stage"),
        Index("idx_candidate_client", "client_id"),
        Index("idx_candidate_revenue_period", "revenue_year", "revenue_month"),
    )

    # Identity and job association
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )
    job_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Pipeline position
    current_stage: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=CandidateStage.SOURCED.value,
    )
    stage_before_hold: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Stage timestamps
    date_sourced: Mapped[datetime | None] = mapped_column(nullable=True)
    date_screening_started: Mapped[datetime | None] = mapped_column(nullable=True)
    date_interview_scheduled: Mapped[datetime | None] = mapped_column(nullable=True)
    date_interview_completed: Mapped[datetime | None] = mapped_column(nullable=True)
    date_offer_extended: Mapped[datetime | None] = mapped_column(nullable=True)
    date_offer_accepted: Mapped[datetime | None] = mapped_column(nullable=True)
    date_documentation_started: Mapped[datetime | None] = mapped_column(nullable=True)
    date_joined: Mapped[date | None] = mapped_column(nullable=True)
    date_rejected: Mapped[datetime | None] = mapped_column(nullable=True)
    date_dropped: Mapped[datetime | None] = mapped_column(nullable=True)
    date_on_hold: Mapped[datetime | None] = mapped_column(nullable=True)
    last_activity_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Compensation (mirrored from the active offer)
    expected_ctc: Mapped[Decimal | None] = mapped_column(nullable=True)
    offered_ctc: Mapped[Decimal | None] = mapped_column(nullable=True)
    fixed_ctc: Mapped[Decimal | None] = mapped_column(nullable=True)
    variable_ctc: Mapped[Decimal | None] = mapped_column(nullable=True)
    billable_ctc: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Revenue
    revenue_percentage: Mapped[Decimal | None] = mapped_column(
        percentage_column_type(),
        nullable=True,
    )
    revenue_earned: Mapped[Decimal | None] = mapped_column(nullable=True)
    revenue_month: Mapped[str | None] = mapped_column(String(7), nullable=True)
    revenue_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Guarantee
    guarantee_period_ends: Mapped[date | None] = mapped_column(nullable=True)
    is_placement_safe: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    placement_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Renege
    renege_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    renege_date: Mapped[date | None] = mapped_column(nullable=True)

    client = relationship("Client", lazy="joined")
    offers = relationship(
        "Offer",
        back_populates="candidate",
        order_by="Offer.created_at",
        lazy="selectin",
    )

    @property
    def stage(self) -> CandidateStage:
        return CandidateStage(self.current_stage)

    @property
    def has_joined_once(self) -> bool:
        return self.guarantee_period_ends is not None

    def __repr__(self) -> str:
        return f"<Candidate {self.full_name} [{self.current_stage}]>"
