"""
TimelineSelector -- read access to the candidate activity timeline.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from placement_kernel.models.timeline import TimelineEntry
from placement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class TimelineItem:
    """A single entry in a candidate timeline."""

    seq: int
    activity_type: str
    title: str
    description: str | None
    actor_id: str
    actor_role: str | None
    occurred_at: datetime
    offer_id: UUID | None
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class TimelineTrace:
    """All timeline entries of one candidate, oldest first."""

    candidate_id: UUID
    entries: tuple[TimelineItem, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def activity_types(self) -> tuple[str, ...]:
        return tuple(e.activity_type for e in self.entries)

    @property
    def last(self) -> TimelineItem | None:
        return self.entries[-1] if self.entries else None


def _to_item(entry: TimelineEntry) -> TimelineItem:
    return TimelineItem(
        seq=entry.seq,
        activity_type=entry.activity_type,
        title=entry.title,
        description=entry.description,
        actor_id=entry.actor_id,
        actor_role=entry.actor_role,
        occurred_at=entry.occurred_at,
        offer_id=entry.offer_id,
        payload=dict(entry.payload or {}),
        hash=entry.hash,
    )


class TimelineSelector(BaseSelector[TimelineEntry]):

    def for_candidate(self, candidate_id: UUID) -> TimelineTrace:
        entries = self.session.execute(
            select(TimelineEntry)
            .where(TimelineEntry.candidate_id == candidate_id)
            .order_by(TimelineEntry.seq)
        ).scalars().all()
        return TimelineTrace(candidate_id, tuple(_to_item(e) for e in entries))

    def recent(self, limit: int = 50, activity_type: str | None = None) -> list[TimelineItem]:
        """Latest entries across all candidates, newest first."""
        stmt = select(TimelineEntry).order_by(TimelineEntry.occurred_at.desc()).limit(limit)
        if activity_type is not None:
            stmt = stmt.where(TimelineEntry.activity_type == activity_type)
        return [_to_item(e) for e in self.session.execute(stmt).scalars()]
