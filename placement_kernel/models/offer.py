"""
Module: placement_kernel.models.offer
Responsibility: ORM persistence for offers and their status lifecycle.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - At most one offer per candidate in {extended, accepted, joined}
      (partial unique index ``uq_offer_one_active_per_candidate``).  A
      rejected, expired or reneged offer never blocks a new one.
    - ``revenue_percentage`` is captured from the client at creation and
      never changes afterwards.
    - offered_ctc = fixed_ctc + variable_ctc; billable_ctc = fixed_ctc.
    - Status changes are conditional UPDATEs keyed on the expected prior
      status (OfferLedger.set_status).
    - Offers are never hard-deleted.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from placement_kernel.db.base import TrackedBase, UUIDString
from placement_kernel.db.types import percentage_column_type
from placement_kernel.domain.stages import OfferStatus

_ACTIVE_STATUS_PREDICATE = text("status IN ('extended', 'accepted', 'joined')")


class Offer(TrackedBase):
    """An offer extended to a candidate for one client role."""

    __tablename__ = "offers"

    __table_args__ = (
        CheckConstraint(
            "status IN ('extended', 'accepted', 'rejected', 'expired', 'joined', 'renege')",
            name="ck_offers_valid_status",
        ),
        CheckConstraint("fixed_ctc >= 0", name="ck_offers_fixed_ctc_non_negative"),
        Index(
            "uq_offer_one_active_per_candidate",
            "candidate_id",
            unique=True,
            postgresql_where=_ACTIVE_STATUS_PREDICATE,
            sqlite_where=_ACTIVE_STATUS_PREDICATE,
        ),
        Index("idx_offer_candidate", "candidate_id"),
        Index("idx_offer_status_valid_until", "status", "offer_valid_until"),
    )

    candidate_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("candidates.id"),
        nullable=False,
    )
    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=OfferStatus.EXTENDED.value,
    )
    status_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Compensation
    fixed_ctc: Mapped[Decimal] = mapped_column(nullable=False)
    variable_ctc: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    offered_ctc: Mapped[Decimal] = mapped_column(nullable=False)
    billable_ctc: Mapped[Decimal] = mapped_column(nullable=False)
    revenue_percentage: Mapped[Decimal] = mapped_column(
        percentage_column_type(),
        nullable=False,
    )

    # Dates
    offer_date: Mapped[date | None] = mapped_column(nullable=True)
    offer_valid_until: Mapped[date | None] = mapped_column(nullable=True)
    expected_joining_date: Mapped[date | None] = mapped_column(nullable=True)
    actual_joining_date: Mapped[date | None] = mapped_column(nullable=True)

    # Job details
    designation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    work_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reporting_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Closure
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    renege_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    renege_date: Mapped[date | None] = mapped_column(nullable=True)

    candidate = relationship("Candidate", back_populates="offers")

    @property
    def offer_status(self) -> OfferStatus:
        return OfferStatus(self.status)

    def __repr__(self) -> str:
        return f"<Offer {self.id} [{self.status}] candidate={self.candidate_id}>"
