"""
Tests for the Stage Machine tables (``placement_kernel.domain.stages``).

Covers the offer workflow, free-form stage guards and the stage <-> offer
mirror plan that keeps candidate stage and offer status from diverging.
"""

import pytest

from placement_kernel.domain.stages import (
    ACTIVE_OFFER_STATUSES,
    OFFER_WORKFLOW,
    STAGE_TIMESTAMP_FIELDS,
    CandidateStage,
    OfferStatus,
    check_stage_move,
    parse_offer_status,
    parse_stage,
    plan_offer_mirror,
    stage_matches_offer,
)
from placement_kernel.domain.workflow import Transition, Workflow
from placement_kernel.exceptions import InvalidStageError


class TestOfferWorkflow:

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            ("extended", "accepted"),
            ("extended", "rejected"),
            ("extended", "expired"),
            ("accepted", "rejected"),
            ("accepted", "joined"),
            ("accepted", "renege"),
            ("joined", "renege"),
        ],
    )
    def test_legal_transitions(self, from_status, to_status):
        assert OFFER_WORKFLOW.allows(from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            ("rejected", "joined"),
            ("expired", "accepted"),
            ("renege", "joined"),
            ("extended", "joined"),
            ("joined", "rejected"),
        ],
    )
    def test_illegal_transitions(self, from_status, to_status):
        assert not OFFER_WORKFLOW.allows(from_status, to_status)

    def test_only_join_recognises_revenue(self):
        recognising = [t for t in OFFER_WORKFLOW.transitions if t.recognises_revenue]
        assert [(t.from_state, t.to_state) for t in recognising] == [("accepted", "joined")]

    def test_only_joined_renege_reverses_revenue(self):
        reversing = [t for t in OFFER_WORKFLOW.transitions if t.reverses_revenue]
        assert [(t.from_state, t.to_state) for t in reversing] == [("joined", "renege")]

    def test_terminal_states_have_no_exits(self):
        for state in OFFER_WORKFLOW.terminal_states:
            assert OFFER_WORKFLOW.targets(state) == ()

    def test_workflow_rejects_unknown_state(self):
        with pytest.raises(ValueError):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", "go"),),
                terminal_states=(),
            )


class TestParsing:

    def test_parse_stage_is_case_insensitive(self):
        assert parse_stage(" Joined ") == CandidateStage.JOINED

    def test_parse_unknown_stage(self):
        with pytest.raises(InvalidStageError):
            parse_stage("hired")

    def test_parse_offer_status(self):
        assert parse_offer_status("renege") == OfferStatus.RENEGE
        with pytest.raises(InvalidStageError):
            parse_offer_status("withdrawn")


class TestCheckStageMove:

    def test_same_stage_is_noop(self):
        assert check_stage_move(CandidateStage.SCREENING, CandidateStage.SCREENING) == (True, "noop")

    def test_joined_only_leaves_by_dropped(self):
        allowed, _ = check_stage_move(CandidateStage.JOINED, CandidateStage.SCREENING)
        assert not allowed
        allowed, _ = check_stage_move(CandidateStage.JOINED, CandidateStage.DROPPED)
        assert allowed

    def test_on_hold_only_from_active_stage(self):
        assert check_stage_move(CandidateStage.INTERVIEW_SCHEDULED, CandidateStage.ON_HOLD)[0]
        assert not check_stage_move(CandidateStage.REJECTED, CandidateStage.ON_HOLD)[0]

    def test_free_movement_without_offer(self):
        assert check_stage_move(CandidateStage.INTERVIEW_COMPLETED, CandidateStage.SOURCED)[0]


class TestPlanOfferMirror:

    def test_no_offer_no_constraint(self):
        plan = plan_offer_mirror(CandidateStage.SCREENING, None)
        assert plan.allowed and plan.offer_status is None

    def test_accepting_extended_offer(self):
        plan = plan_offer_mirror(CandidateStage.OFFER_ACCEPTED, OfferStatus.EXTENDED)
        assert plan.offer_status == OfferStatus.ACCEPTED

    def test_documentation_keeps_accepted_offer(self):
        plan = plan_offer_mirror(CandidateStage.DOCUMENTATION, OfferStatus.ACCEPTED)
        assert plan.allowed and plan.offer_status is None

    def test_rejected_rejects_offer(self):
        plan = plan_offer_mirror(CandidateStage.REJECTED, OfferStatus.ACCEPTED)
        assert plan.offer_status == OfferStatus.REJECTED

    def test_rejected_refused_for_joined_offer(self):
        assert not plan_offer_mirror(CandidateStage.REJECTED, OfferStatus.JOINED).allowed

    def test_dropped_rejects_extended_and_reneges_accepted(self):
        assert plan_offer_mirror(CandidateStage.DROPPED, OfferStatus.EXTENDED).offer_status == OfferStatus.REJECTED
        assert plan_offer_mirror(CandidateStage.DROPPED, OfferStatus.ACCEPTED).offer_status == OfferStatus.RENEGE
        assert plan_offer_mirror(CandidateStage.DROPPED, OfferStatus.JOINED).offer_status == OfferStatus.RENEGE

    def test_moving_back_with_active_offer_refused(self):
        plan = plan_offer_mirror(CandidateStage.SCREENING, OfferStatus.EXTENDED)
        assert not plan.allowed
        assert "extended" in plan.reason

    def test_on_hold_leaves_offer(self):
        plan = plan_offer_mirror(CandidateStage.ON_HOLD, OfferStatus.ACCEPTED)
        assert plan.allowed and plan.offer_status is None

    @pytest.mark.parametrize("status", sorted(ACTIVE_OFFER_STATUSES, key=lambda s: s.value))
    def test_every_allowed_plan_ends_consistent(self, status):
        for target in CandidateStage:
            plan = plan_offer_mirror(target, status)
            if not plan.allowed or target == CandidateStage.ON_HOLD:
                continue
            final = plan.offer_status or status
            assert stage_matches_offer(target, final)


class TestStageMatchesOffer:

    def test_on_hold_judged_by_resume_stage(self):
        assert stage_matches_offer(
            CandidateStage.ON_HOLD, OfferStatus.ACCEPTED, CandidateStage.DOCUMENTATION
        )
        assert not stage_matches_offer(
            CandidateStage.ON_HOLD, OfferStatus.ACCEPTED, CandidateStage.SCREENING
        )

    def test_closed_offer_imposes_nothing(self):
        assert stage_matches_offer(CandidateStage.SCREENING, OfferStatus.EXPIRED)


def test_joined_has_no_event_timestamp_column():
    assert CandidateStage.JOINED not in STAGE_TIMESTAMP_FIELDS
    assert STAGE_TIMESTAMP_FIELDS[CandidateStage.DOCUMENTATION] == "date_documentation_started"
