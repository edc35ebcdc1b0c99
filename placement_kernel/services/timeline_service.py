"""
TimelineService -- append-only, hash-chained candidate activity trail.

Responsibility:
    Appends one immutable ``TimelineEntry`` per lifecycle event and
    validates the per-candidate hash chain for tamper detection.

Architecture position:
    Kernel > Services -- called only by LifecycleOrchestrator.

Invariants enforced:
    - Append-only: entries are never modified or deleted (ORM listeners on
      the TimelineEntry model).
    - Chain integrity: ``hash = H(candidate_id | activity_type |
      payload_hash | prev_hash)``; every entry links to its candidate's
      previous entry.
    - ``seq`` increases by one per candidate; ``(candidate_id, seq)`` is
      unique, so two racing writers cannot both extend the same link.

Failure modes:
    - IntegrityError: a concurrent writer took the same ``seq``.  The
      orchestrator writes inside a SAVEPOINT and downgrades this to a
      warning.
    - TimelineChainBrokenError: ``validate_chain`` found a mismatch.
"""

import json
from typing import Any
from uuid import UUID

from sqlalchemy import select

from placement_kernel.exceptions import TimelineChainBrokenError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.timeline import ActivityType, TimelineEntry
from placement_kernel.services.base import BaseService
from placement_kernel.utils.hashing import (
    canonicalize_json,
    hash_payload,
    hash_timeline_entry,
)

logger = get_logger("services.timeline")


class TimelineService(BaseService[TimelineEntry]):
    """
    Creates and validates timeline entries.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT decide whether a failed write is fatal; the caller does.
    """

    def _last_entry(self, candidate_id: UUID) -> TimelineEntry | None:
        return self.session.execute(
            select(TimelineEntry)
            .where(TimelineEntry.candidate_id == candidate_id)
            .order_by(TimelineEntry.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    def record(
        self,
        candidate_id: UUID,
        activity_type: ActivityType,
        title: str,
        *,
        actor_id: str,
        actor_role: str | None = None,
        offer_id: UUID | None = None,
        description: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> TimelineEntry:
        """
        Append an entry to the candidate's chain.

        ``payload`` may hold Decimal, date and UUID values; it is stored in
        its canonical JSON form so the hash can be recomputed from the row.
        """
        last = self._last_entry(candidate_id)
        seq = last.seq + 1 if last else 1
        prev_hash = last.hash if last else None

        stored_payload = json.loads(canonicalize_json(payload or {}))
        payload_hash = hash_payload(stored_payload)
        entry_hash = hash_timeline_entry(
            candidate_id=str(candidate_id),
            activity_type=activity_type.value,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        entry = TimelineEntry(
            candidate_id=candidate_id,
            offer_id=offer_id,
            seq=seq,
            activity_type=activity_type.value,
            title=title,
            description=description,
            payload=stored_payload,
            actor_id=actor_id,
            actor_role=actor_role,
            occurred_at=self.clock.now(),
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=entry_hash,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "timeline_entry_created",
            extra={
                "activity_type": activity_type.value,
                "seq": seq,
            },
        )
        return entry

    def validate_chain(self, candidate_id: UUID | None = None) -> bool:
        """
        Validate one candidate's chain, or every chain when ``candidate_id`` is None.

        Raises:
            TimelineChainBrokenError: On the first hash or link mismatch.
        """
        stmt = select(TimelineEntry).order_by(TimelineEntry.candidate_id, TimelineEntry.seq)
        if candidate_id is not None:
            stmt = stmt.where(TimelineEntry.candidate_id == candidate_id)
        entries = self.session.execute(stmt).scalars().all()

        previous: TimelineEntry | None = None
        for entry in entries:
            if previous is not None and previous.candidate_id != entry.candidate_id:
                previous = None

            expected_prev = previous.hash if previous else None
            if entry.prev_hash != expected_prev:
                logger.critical("timeline_chain_broken", extra={"entry_id": str(entry.id)})
                raise TimelineChainBrokenError(
                    str(entry.id), expected_prev or "None", entry.prev_hash or "None"
                )

            if hash_payload(entry.payload or {}) != entry.payload_hash:
                logger.critical("timeline_chain_broken", extra={"entry_id": str(entry.id)})
                raise TimelineChainBrokenError(
                    str(entry.id), hash_payload(entry.payload or {}), entry.payload_hash
                )

            expected_hash = hash_timeline_entry(
                candidate_id=str(entry.candidate_id),
                activity_type=entry.activity_type,
                payload_hash=entry.payload_hash,
                prev_hash=entry.prev_hash,
            )
            if entry.hash != expected_hash:
                logger.critical("timeline_chain_broken", extra={"entry_id": str(entry.id)})
                raise TimelineChainBrokenError(str(entry.id), expected_hash, entry.hash)

            previous = entry

        return True
