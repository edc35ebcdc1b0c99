"""
Timeline hash chain and immutability.

The timeline is append-only and hash-chained per candidate.  Tampering
through raw SQL (bypassing the ORM listeners) must be detected by
``validate_chain``; tampering through the ORM must be blocked outright.
"""

import pytest
from sqlalchemy import select, update

from placement_kernel.exceptions import (
    ImmutabilityViolationError,
    TimelineChainBrokenError,
)
from placement_kernel.models.offer import Offer
from placement_kernel.models.timeline import TimelineEntry
from placement_kernel.selectors.timeline_selector import TimelineSelector
from placement_kernel.services.timeline_service import TimelineService
from placement_kernel.utils.hashing import hash_timeline_entry


def _entries(session, candidate_id) -> list[TimelineEntry]:
    return list(
        session.execute(
            select(TimelineEntry)
            .where(TimelineEntry.candidate_id == candidate_id)
            .order_by(TimelineEntry.seq)
        ).scalars()
    )


class TestChainStructure:

    def test_full_lifecycle_chain_is_valid(self, session, orchestrator, joined_candidate, actor):
        candidate, _ = joined_candidate()
        orchestrator.record_followup(candidate.id, actor, note="Settled in")

        trace = TimelineSelector(session).for_candidate(candidate.id)
        assert trace.activity_types == (
            "candidate_created",
            "offer_created",
            "offer_status_changed",
            "candidate_joined",
            "followup_recorded",
        )
        assert TimelineService(session).validate_chain(candidate.id)

    def test_links_and_genesis(self, session, offered_candidate):
        candidate, _ = offered_candidate()
        first, second = _entries(session, candidate.id)

        assert first.seq == 1 and second.seq == 2
        assert first.prev_hash is None
        assert second.prev_hash == first.hash
        assert first.hash == hash_timeline_entry(
            str(candidate.id), first.activity_type, first.payload_hash, None
        )

    def test_chains_are_per_candidate(self, session, create_candidate):
        a = create_candidate("Candidate A")
        b = create_candidate("Candidate B")

        (entry_a,) = _entries(session, a.id)
        (entry_b,) = _entries(session, b.id)
        assert entry_a.prev_hash is None
        assert entry_b.prev_hash is None
        assert TimelineService(session).validate_chain()


class TestTamperDetection:

    def test_rewritten_activity_type_detected(self, session, offered_candidate):
        candidate, _ = offered_candidate()
        first = _entries(session, candidate.id)[0]

        session.execute(
            update(TimelineEntry.__table__)
            .where(TimelineEntry.__table__.c.id == first.id)
            .values(activity_type="placement_safe")
        )
        session.expire_all()

        with pytest.raises(TimelineChainBrokenError):
            TimelineService(session).validate_chain(candidate.id)

    def test_rewritten_payload_detected(self, session, offered_candidate):
        candidate, _ = offered_candidate()
        second = _entries(session, candidate.id)[1]
        payload = dict(second.payload)
        payload["new"] = {**payload["new"], "fixed_ctc": "1"}

        session.execute(
            update(TimelineEntry.__table__)
            .where(TimelineEntry.__table__.c.id == second.id)
            .values(payload=payload)
        )
        session.expire_all()

        with pytest.raises(TimelineChainBrokenError):
            TimelineService(session).validate_chain(candidate.id)

    def test_broken_chain_is_logged(self, session, create_candidate, captured_logs):
        candidate = create_candidate()
        (entry,) = _entries(session, candidate.id)
        session.execute(
            update(TimelineEntry.__table__)
            .where(TimelineEntry.__table__.c.id == entry.id)
            .values(prev_hash="0" * 64)
        )
        session.expire_all()

        with pytest.raises(TimelineChainBrokenError):
            TimelineService(session).validate_chain(candidate.id)
        assert any(r["message"] == "timeline_chain_broken" for r in captured_logs())


class TestImmutability:

    def test_timeline_entry_cannot_be_modified(self, session, create_candidate):
        candidate = create_candidate()
        (entry,) = _entries(session, candidate.id)

        entry.title = "Rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_timeline_entry_cannot_be_deleted(self, session, create_candidate):
        candidate = create_candidate()
        (entry,) = _entries(session, candidate.id)

        session.delete(entry)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_candidate_cannot_be_deleted(self, session, create_candidate):
        candidate = create_candidate()

        session.delete(candidate)
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "Candidate"
        session.rollback()

    def test_offer_cannot_be_deleted(self, session, offered_candidate):
        _, offer = offered_candidate()

        session.delete(session.get(Offer, offer.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
