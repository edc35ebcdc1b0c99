"""
Module: placement_kernel.models.timeline
Responsibility: ORM persistence for the candidate activity timeline, the
    append-only audit trail of every lifecycle event.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (ORM listeners in db/immutability.py).
    - Hash chain per candidate:
        hash = H(candidate_id | activity_type | payload_hash | prev_hash)
      ``prev_hash`` is None only for a candidate's first entry.
    - ``seq`` increases by one per candidate, unique together with
      candidate_id.

Audit relevance:
    Consumed by dashboards; the lifecycle core never re-reads it to make a
    decision.  TimelineService.validate_chain() detects tampering.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import Base, UUIDString


class ActivityType(str, Enum):
    """Kinds of lifecycle events that produce a timeline entry."""

    CANDIDATE_CREATED = "candidate_created"
    STAGE_CHANGED = "stage_changed"
    RESUMED_FROM_HOLD = "resumed_from_hold"

    OFFER_CREATED = "offer_created"
    OFFER_UPDATED = "offer_updated"
    OFFER_STATUS_CHANGED = "offer_status_changed"
    OFFER_EXPIRED = "offer_expired"

    CANDIDATE_JOINED = "candidate_joined"
    RENEGE_RECORDED = "renege_recorded"
    PLACEMENT_SAFE = "placement_safe"
    FOLLOWUP_RECORDED = "followup_recorded"


class TimelineEntry(Base):
    """
    One immutable, hash-chained lifecycle event for a candidate.

    Non-goals:
        - This model does NOT compute hashes; TimelineService does.
    """

    __tablename__ = "candidate_timeline"

    __table_args__ = (
        UniqueConstraint("candidate_id", "seq", name="uq_timeline_candidate_seq"),
        Index("idx_timeline_candidate", "candidate_id", "seq"),
        Index("idx_timeline_activity", "activity_type"),
        Index("idx_timeline_occurred", "occurred_at"),
    )

    candidate_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    offer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Old/new values and event context
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_role: Mapped[str | None] = mapped_column(String(50), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None

    def __repr__(self) -> str:
        return f"<TimelineEntry {self.activity_type} candidate={self.candidate_id} seq={self.seq}>"
