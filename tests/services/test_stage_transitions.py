"""
Stage dropdown behaviour: free-form stage selection mirrored onto the offer.
"""

from decimal import Decimal

import pytest

from placement_kernel.exceptions import (
    IllegalStageTransitionError,
    InvalidStageError,
)
from placement_kernel.invariants import check_candidate_invariants
from placement_kernel.selectors.timeline_selector import TimelineSelector
from placement_kernel.services.lifecycle_orchestrator import DEFAULT_DROP_REASON
from tests.factories import TEST_TODAY


class TestPipelineWithoutOffer:

    def test_moves_and_stamps_timestamps(self, orchestrator, create_candidate, actor):
        candidate = create_candidate()

        orchestrator.transition_stage(candidate.id, "screening", actor)
        orchestrator.transition_stage(candidate.id, "interview_scheduled", actor)
        outcome = orchestrator.transition_stage(candidate.id, "interview_completed", actor)

        assert outcome.changed
        assert outcome.previous_stage.value == "interview_scheduled"
        assert candidate.current_stage == "interview_completed"
        assert candidate.date_screening_started is not None
        assert candidate.date_interview_scheduled is not None
        assert candidate.date_interview_completed is not None
        assert candidate.last_activity_date is not None

    def test_same_stage_is_idempotent(self, session, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        orchestrator.transition_stage(candidate.id, "screening", actor)
        entries = len(TimelineSelector(session).for_candidate(candidate.id).entries)

        outcome = orchestrator.transition_stage(candidate.id, "screening", actor)

        assert not outcome.changed
        assert len(TimelineSelector(session).for_candidate(candidate.id).entries) == entries

    def test_unknown_stage(self, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        with pytest.raises(InvalidStageError):
            orchestrator.transition_stage(candidate.id, "hired", actor)

    def test_stage_change_payload(self, session, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        orchestrator.transition_stage(candidate.id, "screening", actor)

        last = TimelineSelector(session).for_candidate(candidate.id).last
        assert last.activity_type == "stage_changed"
        assert last.payload["old"] == {"stage": "sourced"}
        assert last.payload["new"] == {"stage": "screening"}
        assert last.actor_id == actor.actor_id
        assert last.actor_role == actor.role


class TestMirrorOntoOffer:

    def test_offer_accepted_accepts_offer(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.transition_stage(candidate.id, "offer_accepted", actor)
        assert offer.status == "accepted"
        assert candidate.date_offer_accepted is not None

    def test_documentation_keeps_accepted_offer(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.transition_stage(candidate.id, "offer_accepted", actor)
        orchestrator.transition_stage(candidate.id, "documentation", actor)
        assert offer.status == "accepted"
        assert candidate.current_stage == "documentation"
        assert candidate.date_documentation_started is not None

    def test_moving_back_with_active_offer_refused(self, session, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        with pytest.raises(IllegalStageTransitionError):
            orchestrator.transition_stage(candidate.id, "screening", actor)
        assert candidate.current_stage == "offer_extended"
        assert offer.status == "extended"
        assert check_candidate_invariants(session, candidate.id) == []

    def test_rejected_rejects_offer(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.transition_stage(candidate.id, "rejected", actor)
        assert offer.status == "rejected"
        assert candidate.date_rejected is not None

    def test_dropped_with_extended_offer_rejects_it(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.transition_stage(candidate.id, "dropped", actor)
        assert offer.status == "rejected"
        assert candidate.current_stage == "dropped"

    def test_dropped_with_accepted_offer_reneges(self, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.update_offer_status(offer.id, "accepted", actor)

        outcome = orchestrator.transition_stage(candidate.id, "dropped", actor)

        assert offer.status == "renege"
        assert offer.renege_reason == DEFAULT_DROP_REASON
        assert candidate.current_stage == "dropped"
        assert outcome.revenue_reversed is False


class TestJoinedCandidate:

    def test_cannot_move_back(self, orchestrator, joined_candidate, actor):
        candidate, _ = joined_candidate()
        with pytest.raises(IllegalStageTransitionError):
            orchestrator.transition_stage(candidate.id, "screening", actor)
        with pytest.raises(IllegalStageTransitionError):
            orchestrator.transition_stage(candidate.id, "rejected", actor)
        assert candidate.current_stage == "joined"

    def test_dropped_inside_window_reverses(self, session, orchestrator, joined_candidate, actor, deterministic_clock):
        candidate, offer = joined_candidate()
        deterministic_clock.advance_days(5)

        outcome = orchestrator.transition_stage(candidate.id, "dropped", actor)

        assert outcome.revenue_reversed is True
        assert candidate.current_stage == "dropped"
        assert candidate.revenue_earned == Decimal("0")
        assert offer.status == "renege"
        assert check_candidate_invariants(session, candidate.id) == []

    def test_dropped_after_window_stays_joined(self, orchestrator, joined_candidate, actor, deterministic_clock):
        candidate, _ = joined_candidate()
        deterministic_clock.advance_days(120)

        outcome = orchestrator.transition_stage(candidate.id, "dropped", actor)

        assert outcome.revenue_reversed is False
        assert candidate.current_stage == "joined"
        assert candidate.is_placement_safe is True

    def test_joined_without_offer_dropped_reverses(
        self, session, orchestrator, offered_candidate, actor, deterministic_clock
    ):
        candidate, offer = offered_candidate()
        orchestrator.update_offer_status(offer.id, "rejected", actor)
        orchestrator.transition_stage(candidate.id, "joined", actor, joining_date=TEST_TODAY)
        assert candidate.revenue_earned == Decimal("83300.00")

        deterministic_clock.advance_days(3)
        outcome = orchestrator.transition_stage(candidate.id, "dropped", actor)

        assert outcome.revenue_reversed is True
        assert candidate.revenue_earned == Decimal("0")
        assert check_candidate_invariants(session, candidate.id) == []


class TestOnHold:

    def test_park_and_resume(self, session, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        orchestrator.transition_stage(candidate.id, "interview_scheduled", actor)

        orchestrator.transition_stage(candidate.id, "on_hold", actor)
        assert candidate.current_stage == "on_hold"
        assert candidate.stage_before_hold == "interview_scheduled"
        assert candidate.date_on_hold is not None

        outcome = orchestrator.resume_from_hold(candidate.id, actor)
        assert outcome.stage.value == "interview_scheduled"
        assert candidate.stage_before_hold is None
        assert TimelineSelector(session).for_candidate(candidate.id).last.activity_type == "resumed_from_hold"

    def test_hold_with_accepted_offer(self, session, orchestrator, offered_candidate, actor):
        candidate, offer = offered_candidate()
        orchestrator.update_offer_status(offer.id, "accepted", actor)

        orchestrator.transition_stage(candidate.id, "on_hold", actor)
        assert offer.status == "accepted"
        assert check_candidate_invariants(session, candidate.id) == []

        orchestrator.resume_from_hold(candidate.id, actor)
        assert candidate.current_stage == "offer_accepted"

    def test_resume_when_not_on_hold(self, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        with pytest.raises(IllegalStageTransitionError):
            orchestrator.resume_from_hold(candidate.id, actor)

    def test_terminal_stage_cannot_be_parked(self, orchestrator, create_candidate, actor):
        candidate = create_candidate()
        orchestrator.transition_stage(candidate.id, "rejected", actor)
        with pytest.raises(IllegalStageTransitionError):
            orchestrator.transition_stage(candidate.id, "on_hold", actor)
