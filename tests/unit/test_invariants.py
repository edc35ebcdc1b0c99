"""Stored-state invariant checks detect records written around the services."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from placement_kernel.exceptions import CandidateNotFoundError
from placement_kernel.invariants import LifecycleInvariant, check_candidate_invariants
from placement_kernel.models.candidate import Candidate


def _force(session, candidate_id, **values):
    session.execute(
        update(Candidate.__table__).where(Candidate.__table__.c.id == candidate_id).values(**values)
    )
    session.expire_all()


def test_consistent_lifecycle_has_no_violations(session, joined_candidate):
    candidate, _ = joined_candidate()
    assert check_candidate_invariants(session, candidate.id) == []


def test_stage_diverging_from_offer(session, offered_candidate):
    candidate, _ = offered_candidate()
    _force(session, candidate.id, current_stage="screening")
    assert check_candidate_invariants(session, candidate.id) == [
        LifecycleInvariant.STAGE_OFFER_CONSISTENCY
    ]


def test_revenue_on_non_joined_candidate(session, offered_candidate):
    candidate, _ = offered_candidate()
    _force(session, candidate.id, revenue_earned=Decimal("100"))
    assert LifecycleInvariant.REVENUE_ONLY_WHEN_JOINED in check_candidate_invariants(
        session, candidate.id
    )


def test_billable_must_equal_fixed(session, offered_candidate):
    candidate, _ = offered_candidate()
    _force(session, candidate.id, billable_ctc=Decimal("1200000"))
    assert LifecycleInvariant.BILLABLE_IS_FIXED in check_candidate_invariants(
        session, candidate.id
    )


def test_unknown_candidate(session, db_tables):
    with pytest.raises(CandidateNotFoundError):
        check_candidate_invariants(session, uuid4())
