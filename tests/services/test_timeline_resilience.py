"""
A failed timeline write must not undo the lifecycle change it describes.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from placement_kernel.exceptions import IllegalStageTransitionError
from placement_kernel.selectors.timeline_selector import TimelineSelector
from placement_kernel.services.timeline_service import TimelineService
from tests.factories import TEST_TODAY


@pytest.fixture
def broken_timeline(monkeypatch):
    def _fail(self, *args, **kwargs):
        raise OperationalError("INSERT INTO timeline_entries", {}, Exception("disk I/O error"))

    monkeypatch.setattr(TimelineService, "record", _fail)


def test_stage_change_survives_timeline_failure(
    session, orchestrator, create_candidate, actor, broken_timeline, captured_logs
):
    candidate = create_candidate()

    outcome = orchestrator.transition_stage(candidate.id, "screening", actor)

    assert outcome.changed
    assert len(outcome.warnings) == 1
    assert "stage_changed" in outcome.warnings[0]
    session.expire_all()
    assert candidate.current_stage == "screening"
    failed_types = [
        r["activity_type"] for r in captured_logs() if r["message"] == "timeline_write_failed"
    ]
    assert "stage_changed" in failed_types


def test_join_survives_timeline_failure(session, orchestrator, offered_candidate, actor, monkeypatch):
    candidate, offer = offered_candidate()
    orchestrator.update_offer_status(offer.id, "accepted", actor)
    entries_before = len(TimelineSelector(session).for_candidate(candidate.id).entries)

    def _fail(self, *args, **kwargs):
        raise OperationalError("INSERT INTO timeline_entries", {}, Exception("locked"))

    monkeypatch.setattr(TimelineService, "record", _fail)
    outcome = orchestrator.transition_stage(candidate.id, "joined", actor, joining_date=TEST_TODAY)

    assert outcome.warnings
    session.expire_all()
    assert candidate.current_stage == "joined"
    assert candidate.revenue_earned == Decimal("83300.00")
    assert offer.status == "joined"
    assert len(TimelineSelector(session).for_candidate(candidate.id).entries) == entries_before


def test_other_errors_still_roll_back(session, orchestrator, offered_candidate, actor, broken_timeline):
    candidate, offer = offered_candidate()
    with pytest.raises(IllegalStageTransitionError):
        orchestrator.transition_stage(candidate.id, "sourced", actor)
    assert candidate.current_stage == "offer_extended"
    assert offer.status == "extended"
